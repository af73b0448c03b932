"""
Central constants for the ARC HOPE website.
"""
from __future__ import annotations

# Registration status shared by students and volunteers
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
VALID_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

STATUS_LABELS = {
    STATUS_PENDING: "Pending review",
    STATUS_APPROVED: "Approved",
    STATUS_REJECTED: "Rejected",
}

# Monthly household income brackets on the student form (VND)
INCOME_OPTIONS = {
    "under_10m": "Under 10 million",
    "10_20m": "10 to 20 million",
    "over_20m": "Over 20 million",
}

VOLUNTEER_SKILLS = {
    "teaching": "English teaching",
    "mentoring": "1-1 mentoring",
    "content": "Content and materials",
    "tech": "Technical support",
    "marketing": "Marketing and communications",
    "admin": "Administration",
}

VOLUNTEER_AVAILABILITY = {
    "weekday_morning": "Weekday mornings",
    "weekday_afternoon": "Weekday afternoons",
    "weekday_evening": "Weekday evenings",
    "weekend": "Weekends",
    "flexible": "Flexible",
}

# Program curriculum; progress records and course recommendations refer to these names.
PROGRAM_MODULES = (
    "Introduction to Accounting",
    "Financial Accounting Basics",
    "Advanced Financial Accounting",
    "Tax Accounting",
    "Management Accounting",
    "Accounting Software",
    "Integrated Practice",
    "Interview Preparation",
)

SPONSOR_TIERS = ("platinum", "gold", "silver", "bronze")
DEFAULT_SPONSOR_TIER = "bronze"

DEFAULT_BLOG_AUTHOR = "Arc Hope Team"

FAQ_ITEMS = (
    (
        "Who can apply to study at ARC HOPE?",
        "Anyone in difficult circumstances who wants to learn English to change their life. "
        "We prioritise households earning under 15 million VND a month, strong motivation to learn "
        "and a commitment to attend every session.",
    ),
    (
        "Is the program completely free?",
        "Yes. For eligible students the program is 100% free, funded by sponsors and donors. "
        "Students who are better off can contribute to support those who need it more.",
    ),
    (
        "What materials and teaching methods do you use?",
        "An international curriculum adapted for Vietnamese learners, 1-1 mentoring, regular progress "
        "reviews and practice with native speakers, focused on real communication at work.",
    ),
    (
        "How is the schedule organised?",
        "Six months, 3-4 sessions a week of 1.5-2 hours, with evening and weekend classes for working students.",
    ),
    (
        "How can I become a sponsor?",
        "Fund a scholarship for one student (from 3 million VND a month), sponsor a cohort, or give regularly. "
        "Every contribution is reported transparently and you can follow your student's progress.",
    ),
    (
        "What support do graduates get?",
        "Job introductions with partner companies, CV and interview coaching, and an alumni community.",
    ),
    (
        "How do I volunteer or teach?",
        "Register through the volunteer form. Teachers need IELTS 6.5 or above and a commitment of at least three months.",
    ),
    (
        "Where does ARC HOPE operate?",
        "Mainly in Ho Chi Minh City with in-person and online classes, expanding to other provinces "
        "through online learning.",
    ),
)
