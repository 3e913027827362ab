"""
Built-in question catalog and its release history.
"""
from datetime import date
from typing import List

from .models import Question, QuizVersion


CURRENT_VERSION = "2.0.0"


def _basic_questions() -> List[Question]:
    return [
        Question(
            text="What is the largest planet in our solar system?",
            options=("Earth", "Jupiter", "Saturn", "Neptune"),
            correct_answer=1,
            category="Science",
            explanation="Jupiter is the largest planet in our solar system, with a mass greater than all other planets combined.",
        ),
    ]


def _intermediate_questions() -> List[Question]:
    return _basic_questions() + [
        Question(
            text="What is the capital of Australia?",
            options=("Sydney", "Canberra", "Melbourne", "Perth"),
            correct_answer=1,
            category="Geography",
            explanation="Canberra is the capital city of Australia, located in the Australian Capital Territory.",
        ),
    ]


def _all_questions() -> List[Question]:
    return [
        # Science
        Question(
            text="What is the chemical symbol for gold?",
            options=("Go", "Au", "Ag", "Gd"),
            correct_answer=1,
            category="Science",
            explanation="Au is the chemical symbol for gold, derived from the Latin word 'aurum'.",
        ),
        Question(
            text="What is the speed of light in vacuum?",
            options=("300,000 km/s", "299,792,458 m/s", "186,000 miles/s", "All of the above"),
            correct_answer=3,
            category="Science",
            explanation="The speed of light in vacuum is approximately 299,792,458 meters per second, which equals about 300,000 km/s or 186,000 miles/s.",
        ),
        Question(
            text="Which organ in the human body produces insulin?",
            options=("Liver", "Pancreas", "Kidney", "Heart"),
            correct_answer=1,
            category="Science",
            explanation="The pancreas produces insulin, a hormone that regulates blood sugar levels.",
        ),

        # Geography
        Question(
            text="Which is the longest river in the world?",
            options=("Amazon River", "Nile River", "Yangtze River", "Mississippi River"),
            correct_answer=1,
            category="Geography",
            explanation="The Nile River is traditionally considered the longest river in the world at approximately 6,650 kilometers.",
        ),
        Question(
            text="What is the smallest country in the world?",
            options=("Monaco", "Vatican City", "San Marino", "Liechtenstein"),
            correct_answer=1,
            category="Geography",
            explanation="Vatican City is the smallest country in the world with an area of just 0.17 square miles.",
        ),
        Question(
            text="Which mountain range contains Mount Everest?",
            options=("Andes", "Himalayas", "Rocky Mountains", "Alps"),
            correct_answer=1,
            category="Geography",
            explanation="Mount Everest is located in the Himalayas on the border between Nepal and Tibet.",
        ),

        # Earth Science
        Question(
            text="What causes earthquakes?",
            options=("Ocean tides", "Tectonic plate movement", "Weather changes", "Magnetic fields"),
            correct_answer=1,
            category="Earth Science",
            explanation="Earthquakes are primarily caused by the movement of tectonic plates beneath the Earth's surface.",
        ),
        Question(
            text="What is the Earth's outermost layer called?",
            options=("Mantle", "Crust", "Core", "Atmosphere"),
            correct_answer=1,
            category="Earth Science",
            explanation="The crust is the Earth's outermost solid layer, where we live and where most geological activity occurs.",
        ),
        Question(
            text="What type of rock is formed by volcanic activity?",
            options=("Sedimentary", "Igneous", "Metamorphic", "Composite"),
            correct_answer=1,
            category="Earth Science",
            explanation="Igneous rocks are formed when molten rock (magma or lava) cools and solidifies.",
        ),

        # Politics & History
        Question(
            text="Who was the first President of the United States?",
            options=("Thomas Jefferson", "George Washington", "John Adams", "Benjamin Franklin"),
            correct_answer=1,
            category="Politics & History",
            explanation="George Washington was the first President of the United States, serving from 1789 to 1797.",
        ),
        Question(
            text="In which year did World War II end?",
            options=("1944", "1945", "1946", "1947"),
            correct_answer=1,
            category="Politics & History",
            explanation="World War II ended in 1945 with the surrender of Japan in September following the atomic bombings.",
        ),
        Question(
            text="Where is the United Nations headquarters located?",
            options=("Geneva", "New York City", "London", "Paris"),
            correct_answer=1,
            category="Politics & History",
            explanation="The United Nations headquarters is located in New York City, United States.",
        ),

        # More science
        Question(
            text="What gas do plants absorb from the atmosphere during photosynthesis?",
            options=("Oxygen", "Carbon Dioxide", "Nitrogen", "Hydrogen"),
            correct_answer=1,
            category="Science",
            explanation="Plants absorb carbon dioxide from the atmosphere and convert it into glucose during photosynthesis.",
        ),
        Question(
            text="What is the hardest natural substance on Earth?",
            options=("Iron", "Diamond", "Quartz", "Granite"),
            correct_answer=1,
            category="Science",
            explanation="Diamond is the hardest natural substance on Earth, rating 10 on the Mohs hardness scale.",
        ),
        Question(
            text="How many chambers does a human heart have?",
            options=("Two", "Four", "Six", "Eight"),
            correct_answer=1,
            category="Science",
            explanation="The human heart has four chambers: two atria and two ventricles.",
        ),
    ]


def get_version_history() -> List[QuizVersion]:
    """Return every built-in release, oldest first."""
    return [
        QuizVersion(
            version="1.0.0",
            last_updated=date(2024, 1, 1),
            changelog="Initial release with basic science questions",
            questions=_basic_questions(),
        ),
        QuizVersion(
            version="1.1.0",
            last_updated=date(2024, 6, 1),
            changelog="Added geography questions and expanded content",
            questions=_intermediate_questions(),
        ),
        QuizVersion(
            version=CURRENT_VERSION,
            last_updated=date(2024, 10, 2),
            changelog="Major update: Added general knowledge questions covering Science, Geography, Earth Science, and Politics & History",
            questions=_all_questions(),
        ),
    ]


def get_current_release() -> QuizVersion:
    for release in get_version_history():
        if release.version == CURRENT_VERSION:
            return release
    raise LookupError(f"Current version {CURRENT_VERSION} missing from release history")


def get_current_questions() -> List[Question]:
    return list(get_current_release().questions)
