"""
Students module.

Scope:
- Public registration form and the email-based student portal
- Admin review (single and bulk status changes, CSV export)
- Status changes to approved/rejected trigger an email notification
"""
