"""Built-in tests and generated mock questions, used when the backend is unavailable."""
import logging
from typing import List

from engine import DEFAULT_MARKS, DEFAULT_NEGATIVE_MARKS, MOCK_QUESTION_COUNT
from testhall.models import ONLINE, Option, Question, TestSchedule

logger = logging.getLogger(__name__)

SAMPLE_IMAGE_URLS = [
    "https://i.imgur.com/JR8ilft.png",
    "https://i.imgur.com/XzwQB5z.png",
    "https://i.imgur.com/GQQWUe3.png",
    "https://i.imgur.com/LZwXQCT.png",
    "https://i.imgur.com/Y5Wd0Vn.png",
]

SUBJECT_NAMES = {
    "1": "General Intelligence & Reasoning",
    "2": "General Awareness",
    "3": "Quantitative Aptitude",
    "4": "English Comprehension",
    "5": "Quantitative Aptitude & Reasoning",
    "6": "General Awareness & English Comprehension",
}


def default_tests() -> List[TestSchedule]:
    return [
        TestSchedule(
            id="1",
            title="JEE Main Test Series - 6 Test Paper (Full Syllabus Test)",
            instructor="LAKSHYA",
            date="2025/01/20",
            time="02:00 PM - 05:00 PM",
            duration="3 hours",
            status=ONLINE,
            participants=["Class 12 - Science"],
        ),
        TestSchedule(
            id="2",
            title="12th Class Online Test (P Block Elements) Chemistry",
            instructor="LAKSHYA",
            date="2025/01/09",
            time="07:30 PM - 08:30 PM",
            duration="1 hour",
            status=ONLINE,
            participants=["Class 12 - Science"],
        ),
        TestSchedule(
            id="3",
            title="12th Class Online Test (Organic Chemistry) Chemistry",
            instructor="LAKSHYA",
            date="2025/01/08",
            time="07:30 PM - 08:30 PM",
            duration="1 hour",
            status=ONLINE,
            participants=["Class 12 - Science"],
        ),
    ]


def mock_test(test_id: str) -> TestSchedule:
    """Stand-in schedule for an id that is not in the catalog."""
    return TestSchedule(
        id=test_id,
        title="JEE Mock Test - 1",
        instructor="LAKSHYA",
        date="2025/01/20",
        time="02:00 PM - 05:00 PM",
        duration="3 hours",
        status=ONLINE,
        participants=["Class 12 - Science"],
    )


def create_mock_questions(test_id: str, count: int = MOCK_QUESTION_COUNT, with_images: bool = True) -> List[Question]:
    """Questions cycle through the six default subjects; the correct option rotates A-D."""
    logger.info(f"Creating {count} mock questions for test {test_id}")
    questions = []
    for i in range(count):
        subject = str(i % 6 + 1)
        number = i + 1
        options = []
        for j, letter in enumerate("abcd"):
            is_correct = i % 4 == j
            image = SAMPLE_IMAGE_URLS[(i + j + 1) % len(SAMPLE_IMAGE_URLS)] if with_images and is_correct else None
            options.append(Option(
                id=f"q-{number}-{letter}",
                text=f"Option {letter.upper()} for question {number}",
                is_correct=is_correct,
                image_url=image,
            ))
        questions.append(Question(
            id=f"q-{number}",
            text=f"This is question {number} about {SUBJECT_NAMES[subject]}",
            subject=subject,
            image_url=SAMPLE_IMAGE_URLS[i % len(SAMPLE_IMAGE_URLS)] if with_images and i % 3 == 0 else None,
            options=options,
            marks=DEFAULT_MARKS,
            negative_marks=DEFAULT_NEGATIVE_MARKS,
        ))
    return questions
