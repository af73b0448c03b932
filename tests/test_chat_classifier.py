import pytest

from app.archope.modules.chat.classifier import (
    HIGH_POTENTIAL,
    NEEDS_SUPPORT,
    POTENTIAL,
    SPONSOR,
    classify_messages,
    extract_email,
    extract_name,
    extract_phone,
    recommend_courses,
)


@pytest.mark.parametrize(
    "messages, expected",
    [
        (["Công ty tôi muốn tài trợ cho lớp học"], SPONSOR),
        (["Our company would like to sponsor a student"], SPONSOR),
        (["Gia đình em rất khó khăn, em muốn học"], NEEDS_SUPPORT),
        (["I want to register", "my email is an@example.com"], HIGH_POTENTIAL),
        (["Tôi muốn đăng ký, số của tôi là 0901 234 567"], HIGH_POTENTIAL),
        (["I want to register"], POTENTIAL),
        (["Lịch học như thế nào?"], POTENTIAL),
        (["hello"], None),
        ([], None),
    ],
)
def test_classification(messages, expected):
    assert classify_messages(messages).classification == expected


def test_sponsor_wins_over_hardship_and_registration():
    result = classify_messages(["I want to register, my email is a@example.com", "I can't afford it", "maybe donate later"])
    assert result.classification == SPONSOR


def test_contact_details_are_extracted():
    result = classify_messages(["Chào bạn, tên tôi là Lan", "email: Lan.Nguyen@Example.com", "sđt +84 901 234 567"])
    assert result.student_name == "Lan"
    assert result.student_email == "lan.nguyen@example.com"
    assert result.student_phone == "0901234567"


def test_extract_helpers():
    assert extract_email("contact me at x.y+z@mail.co.uk.") == "x.y+z@mail.co.uk"
    assert extract_email("no email here") is None
    assert extract_phone("call 0912.345.678 please") == "0912345678"
    assert extract_phone("order 123456") is None
    assert extract_name("Hi, my name is Tran Van Minh and I want to study") == "Tran Van Minh"
    assert extract_name("my name is lan") == "Lan"
    # Weak triggers need a capitalized word.
    assert extract_name("I am interested in the course") is None
    assert extract_name("I'm Hoa") == "Hoa"



def test_oversized_contact_details_are_dropped():
    huge_email = "a" * 300 + "@example.com"
    assert extract_email(f"email me at {huge_email}") is None
    assert extract_name("my name is " + "X" * 200) is None

    result = classify_messages(["I want to register, my email is " + huge_email, "sđt 0901234567"])
    assert result.student_email is None
    assert result.student_phone == "0901234567"
    assert result.classification == HIGH_POTENTIAL

def test_recommend_courses():
    courses = recommend_courses("I'm a beginner and want help with tax and job interview")
    assert courses == ["Introduction to Accounting", "Tax Accounting", "Interview Preparation"]
    assert recommend_courses("hello") == []
