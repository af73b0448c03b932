"""
Keyword-based lead classification for chat transcripts.

Only the visitor's own messages are scanned. Rules, first match wins:

- SPONSOR: talks about sponsoring, donating or partnering
- NEEDS_SUPPORT: describes financial hardship
- HIGH_POTENTIAL: wants to register and left an email or phone number
- POTENTIAL: shows interest in studying
- None: nothing actionable yet
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from app.archope.constants import PROGRAM_MODULES

SPONSOR = "SPONSOR"
NEEDS_SUPPORT = "NEEDS_SUPPORT"
HIGH_POTENTIAL = "HIGH_POTENTIAL"
POTENTIAL = "POTENTIAL"

CLASSIFICATIONS = (HIGH_POTENTIAL, POTENTIAL, NEEDS_SUPPORT, SPONSOR)
CLASSIFICATION_LABELS = {
    HIGH_POTENTIAL: "High potential",
    POTENTIAL: "Potential",
    NEEDS_SUPPORT: "Needs support",
    SPONSOR: "Sponsor",
}

SPONSOR_KEYWORDS = (
    "tài trợ", "quyên góp", "ủng hộ", "đóng góp", "doanh nghiệp",
    "sponsor", "donate", "donation", "funding", "partnership", "contribute",
)
SUPPORT_KEYWORDS = (
    "khó khăn", "hoàn cảnh", "không có tiền", "không đủ tiền", "thu nhập thấp", "nghèo", "cần hỗ trợ",
    "can't afford", "cannot afford", "hardship", "low income", "struggling", "financial aid",
)
REGISTER_KEYWORDS = (
    "đăng ký", "đăng kí", "muốn học", "muốn tham gia", "ghi danh",
    "register", "sign up", "signup", "enroll", "apply", "want to join", "want to learn",
)
INTEREST_KEYWORDS = REGISTER_KEYWORDS + (
    "khóa học", "lớp học", "học phí", "lịch học", "tiếng anh", "kế toán", "học",
    "course", "class", "tuition", "schedule", "english", "accounting", "learn", "study",
)

# Program module -> phrases that suggest it
COURSE_KEYWORDS = {
    PROGRAM_MODULES[0]: ("nhập môn", "mới bắt đầu", "cơ bản", "beginner", "basics", "from scratch"),
    PROGRAM_MODULES[1]: ("tài chính", "báo cáo tài chính", "financial"),
    PROGRAM_MODULES[2]: ("nâng cao", "advanced"),
    PROGRAM_MODULES[3]: ("thuế", "tax"),
    PROGRAM_MODULES[4]: ("quản trị", "management", "manager"),
    PROGRAM_MODULES[5]: ("phần mềm", "misa", "excel", "software"),
    PROGRAM_MODULES[6]: ("thực hành", "thực tế", "practice", "hands-on"),
    PROGRAM_MODULES[7]: ("phỏng vấn", "xin việc", "tìm việc", "interview", "resume", "job"),
}

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_PHONE_RE = re.compile(r"(?<!\d)(?:\+84|0)(?:[\s.-]?\d){9,10}(?!\d)")
_NAME_RE = re.compile(
    r"\b(?P<trigger>my name is|tên (?:tôi|mình|em|của tôi|của mình) là|i am|i'm|tôi là|mình là|em là)\s+"
    r"(?P<words>[^\W\d_]+(?:\s+[^\W\d_]+){0,4})",
    re.IGNORECASE,
)
# Triggers that almost always introduce a name; the others need capitalized words.
_STRONG_TRIGGERS = ("my name is", "tên")
# Longer values would not fit the conversation columns.
MAX_EMAIL_LEN = 255
MAX_NAME_LEN = 128


@dataclass
class LeadClassification:
    classification: str | None = None
    recommended_courses: list[str] = field(default_factory=list)
    student_name: str | None = None
    student_email: str | None = None
    student_phone: str | None = None


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


def extract_email(text: str) -> str | None:
    m = _EMAIL_RE.search(text)
    if not m:
        return None
    email = m.group(0).rstrip(".").lower()
    return email if len(email) <= MAX_EMAIL_LEN else None


def extract_phone(text: str) -> str | None:
    m = _PHONE_RE.search(text)
    if not m:
        return None
    digits = re.sub(r"\D", "", m.group(0))
    if digits.startswith("84"):
        digits = "0" + digits[2:]
    return digits


def extract_name(text: str) -> str | None:
    for m in _NAME_RE.finditer(text):
        trigger = m.group("trigger").lower()
        words = m.group("words").split()
        capitalized = []
        for w in words:
            if not w[0].isupper():
                break
            capitalized.append(w)
        if capitalized:
            name = " ".join(capitalized)
        elif trigger.startswith(_STRONG_TRIGGERS):
            name = words[0].capitalize()
        else:
            continue
        return name if len(name) <= MAX_NAME_LEN else None
    return None


def recommend_courses(text: str) -> list[str]:
    lowered = text.lower()
    return [course for course, keywords in COURSE_KEYWORDS.items() if _contains_any(lowered, keywords)]


def classify_messages(user_messages: list[str]) -> LeadClassification:
    """Classify a transcript from the visitor's messages, oldest first."""
    transcript = "\n".join(m for m in user_messages if m)
    lowered = transcript.lower()

    result = LeadClassification(
        recommended_courses=recommend_courses(transcript),
        student_name=extract_name(transcript),
        student_email=extract_email(transcript),
        student_phone=extract_phone(transcript),
    )
    has_contact = bool(result.student_email or result.student_phone)

    if _contains_any(lowered, SPONSOR_KEYWORDS):
        result.classification = SPONSOR
    elif _contains_any(lowered, SUPPORT_KEYWORDS):
        result.classification = NEEDS_SUPPORT
    elif _contains_any(lowered, REGISTER_KEYWORDS) and has_contact:
        result.classification = HIGH_POTENTIAL
    elif _contains_any(lowered, INTEREST_KEYWORDS) or result.recommended_courses:
        result.classification = POTENTIAL
    return result
