"""
Core data models for the General Knowledge Quiz.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple


DEFAULT_AVATAR = "👤"

# Options are answered with the letters A-D
MAX_OPTIONS = 4


@dataclass(frozen=True)
class Question:
    """Represents a single multiple-choice quiz question."""
    text: str
    options: Tuple[str, ...]
    correct_answer: int
    category: str
    explanation: str = ""

    def __post_init__(self):
        # Accept any sequence for options but store an immutable tuple
        object.__setattr__(self, "options", tuple(self.options))
        if not 2 <= len(self.options) <= MAX_OPTIONS:
            raise ValueError(f"Question '{self.text}' needs 2 to {MAX_OPTIONS} options")
        if not isinstance(self.correct_answer, int) or not 0 <= self.correct_answer < len(self.options):
            raise ValueError(
                f"Question '{self.text}' has invalid correct answer index {self.correct_answer}"
            )
        if not self.category or not self.category.strip():
            raise ValueError(f"Question '{self.text}' must have a category")

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_answer]

    def is_correct(self, index: int) -> bool:
        """Check whether an option index is the correct answer."""
        return index == self.correct_answer


@dataclass(frozen=True)
class QuizVersion:
    """A release of the question catalog."""
    version: str
    last_updated: date
    changelog: str
    questions: Tuple[Question, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "questions", tuple(self.questions))

    @property
    def version_key(self) -> Tuple[int, ...]:
        """Numeric key used to order releases (1.10.0 sorts after 1.9.0)."""
        parts = []
        for part in self.version.split("."):
            digits = "".join(ch for ch in part if ch.isdigit())
            parts.append(int(digits) if digits else 0)
        return tuple(parts)


@dataclass(frozen=True)
class QuizResult:
    """Final outcome of one play-through."""
    score: int
    total_questions: int

    @property
    def percentage(self) -> float:
        if self.total_questions <= 0:
            return 0.0
        return (self.score / self.total_questions) * 100

    @property
    def rounded_percentage(self) -> int:
        return round(self.percentage)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'total_questions': self.total_questions,
            'percentage': self.percentage,
        }


@dataclass
class UserProfile:
    """The locally stored player profile."""
    username: str = ""
    avatar: str = DEFAULT_AVATAR
    total_score: int = 0
    games_played: int = 0
    achievements: List[str] = field(default_factory=list)
    last_played: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return f"{self.avatar} {self.username or 'Anonymous'}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the stored record's key names."""
        return {
            'username': self.username,
            'avatar': self.avatar,
            'totalScore': self.total_score,
            'gamesPlayed': self.games_played,
            'achievements': list(self.achievements),
            'lastPlayed': self.last_played.isoformat() if self.last_played else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        """
        Build a profile from a stored record, substituting defaults for missing keys.

        Raises:
            ValueError: If a present value has the wrong type or format
        """
        if not isinstance(data, dict):
            raise ValueError("Profile record must be a JSON object")

        username = data.get('username') or ""
        avatar = data.get('avatar') or DEFAULT_AVATAR
        total_score = data.get('totalScore') or 0
        games_played = data.get('gamesPlayed') or 0
        achievements = data.get('achievements') or []
        last_played_raw = data.get('lastPlayed')

        if not isinstance(username, str) or not isinstance(avatar, str):
            raise ValueError("Profile username and avatar must be strings")
        if not isinstance(total_score, int) or not isinstance(games_played, int):
            raise ValueError("Profile counters must be integers")
        if total_score < 0 or games_played < 0:
            raise ValueError("Profile counters cannot be negative")
        if not isinstance(achievements, list) or not all(isinstance(a, str) for a in achievements):
            raise ValueError("Profile achievements must be a list of strings")

        last_played = None
        if last_played_raw:
            last_played = datetime.fromisoformat(last_played_raw)

        # Keep first occurrence order, drop duplicates
        unique_achievements = list(dict.fromkeys(achievements))

        return cls(
            username=username,
            avatar=avatar,
            total_score=total_score,
            games_played=games_played,
            achievements=unique_achievements,
            last_played=last_played,
        )


@dataclass
class QuizSettings:
    """Configuration settings for a play-through."""
    question_count: int = 10
    timer_duration: int = 30
    advance_delay: int = 3
    tick_interval: float = 1.0
