"""
Data manager for catalog release files and question data validation.
"""
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import catalog
from .models import MAX_OPTIONS, Question, QuizVersion


class DataManager:
    """Manages the question catalog: built-in releases plus optional JSON release files."""

    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

    def __init__(self, catalog_directory: Optional[str] = None):
        """
        Initialize DataManager.

        Args:
            catalog_directory: Directory containing extra JSON release files,
                or None to use only the built-in catalog
        """
        self.catalog_directory = Path(catalog_directory) if catalog_directory else None
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []
        self._releases: Dict[str, QuizVersion] = {}
        self._loaded_files: List[str] = []
        self._reset_to_builtin()

    def _reset_to_builtin(self) -> None:
        self._releases = {release.version: release for release in catalog.get_version_history()}

    def load_catalog(self) -> List[QuizVersion]:
        """
        Load release files from the catalog directory on top of the built-in history.

        Files that fail to load are skipped and recorded in ``load_errors``; the
        built-in releases are always available.

        Returns:
            Release history ordered oldest first
        """
        self.load_errors.clear()
        self._loaded_files.clear()
        self._reset_to_builtin()

        if self.catalog_directory is None:
            self.logger.info("No catalog directory configured, using built-in questions")
            return self.get_version_history()

        if not self.catalog_directory.exists():
            self.logger.warning(f"Catalog directory {self.catalog_directory} does not exist")
            self.load_errors.append(f"Catalog directory not found: {self.catalog_directory}")
            return self.get_version_history()

        try:
            json_files = sorted(self.catalog_directory.glob("*.json"))
        except OSError as e:
            self.logger.error(f"Failed to scan catalog directory {self.catalog_directory}: {e}")
            self.load_errors.append(f"Cannot read catalog directory: {e}")
            return self.get_version_history()

        for json_file in json_files:
            release = self._load_release_file(json_file)
            if release is None:
                continue
            if release.version in self._releases:
                self.logger.info(f"Release {release.version} from {json_file.name} replaces the built-in one")
            self._releases[release.version] = release
            self._loaded_files.append(json_file.name)
            self.logger.info(
                f"Loaded release '{release.version}' with {len(release.questions)} questions from {json_file.name}"
            )

        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} catalog loading errors")

        return self.get_version_history()

    def _load_release_file(self, json_file: Path) -> Optional[QuizVersion]:
        """
        Load and parse one release file.

        Args:
            json_file: Path to the JSON file

        Returns:
            Parsed release, or None if the file was rejected
        """
        try:
            file_size = json_file.stat().st_size
            if file_size > self.MAX_FILE_SIZE:
                self._record_error(json_file, f"File too large ({file_size / 1024 / 1024:.1f}MB)")
                return None

            with open(json_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self._record_error(json_file, f"Invalid JSON: {e}")
            return None
        except UnicodeDecodeError as e:
            self._record_error(json_file, f"File is not valid UTF-8: {e}")
            return None
        except OSError as e:
            self._record_error(json_file, f"Cannot read file: {e}")
            return None

        problems = self.validate_release_structure(data)
        if problems:
            self._record_error(json_file, "; ".join(problems))
            return None

        try:
            return self._parse_release(data)
        except ValueError as e:
            self._record_error(json_file, str(e))
            return None

    def _record_error(self, json_file: Path, message: str) -> None:
        self.logger.error(f"Rejected catalog file {json_file.name}: {message}")
        self.load_errors.append(f"{json_file.name}: {message}")

    def validate_release_structure(self, data: Any) -> List[str]:
        """
        Validate that JSON data has the release structure.

        Expected structure:
        {
            "version": str,
            "last_updated": "YYYY-MM-DD",
            "changelog": str,
            "questions": [
                {
                    "question": str,
                    "options": [str, ...],
                    "correct_answer": int,
                    "category": str,
                    "explanation": str  # Optional
                }
            ]
        }

        Args:
            data: Parsed JSON data to validate

        Returns:
            List of problems found, empty when the structure is valid
        """
        if not isinstance(data, dict):
            return ["Release data must be a JSON object"]

        problems = []
        for key in ("version", "last_updated", "changelog"):
            if not isinstance(data.get(key), str) or not data.get(key).strip():
                problems.append(f"'{key}' must be a non-empty string")

        questions = data.get("questions")
        if not isinstance(questions, list) or not questions:
            problems.append("'questions' must be a non-empty array")
            return problems

        for i, item in enumerate(questions):
            if not isinstance(item, dict):
                problems.append(f"Question {i} must be an object")
                continue
            if not isinstance(item.get("question"), str):
                problems.append(f"Question {i} 'question' field must be a string")
            options = item.get("options")
            if (not isinstance(options, list) or not 2 <= len(options) <= MAX_OPTIONS
                    or not all(isinstance(o, str) for o in options)):
                problems.append(f"Question {i} 'options' must be an array of 2 to {MAX_OPTIONS} strings")
            correct = item.get("correct_answer")
            if isinstance(correct, bool) or not isinstance(correct, int):
                problems.append(f"Question {i} 'correct_answer' must be an integer")
            elif isinstance(options, list) and not 0 <= correct < len(options):
                problems.append(f"Question {i} 'correct_answer' is out of range")
            if not isinstance(item.get("category"), str) or not item.get("category").strip():
                problems.append(f"Question {i} 'category' must be a non-empty string")
            if "explanation" in item and not isinstance(item["explanation"], str):
                problems.append(f"Question {i} 'explanation' must be a string")

        return problems

    def _parse_release(self, data: dict) -> QuizVersion:
        """
        Parse validated release data.

        Raises:
            ValueError: If the date is malformed or a question is invalid
        """
        try:
            last_updated = date.fromisoformat(data["last_updated"])
        except ValueError:
            raise ValueError(f"Invalid 'last_updated' date: {data['last_updated']}")

        questions = [
            Question(
                text=item["question"],
                options=tuple(item["options"]),
                correct_answer=item["correct_answer"],
                category=item["category"],
                explanation=item.get("explanation", ""),
            )
            for item in data["questions"]
        ]
        return QuizVersion(
            version=data["version"],
            last_updated=last_updated,
            changelog=data["changelog"],
            questions=questions,
        )

    def get_version_history(self) -> List[QuizVersion]:
        """Every known release, oldest first."""
        return sorted(self._releases.values(), key=lambda release: release.version_key)

    def get_current_release(self) -> QuizVersion:
        """The newest release; the selector only ever operates on its questions."""
        return self.get_version_history()[-1]

    def get_current_questions(self) -> List[Question]:
        return list(self.get_current_release().questions)

    def get_categories(self) -> List[str]:
        """Category labels of the current release in first-appearance order."""
        return list(dict.fromkeys(q.category for q in self.get_current_release().questions))

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the last load operation.

        Returns:
            Dictionary with loading statistics and status
        """
        current = self.get_current_release()
        return {
            'total_releases': len(self._releases),
            'current_version': current.version,
            'question_count': len(current.questions),
            'categories': self.get_categories(),
            'loaded_files': list(self._loaded_files),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors(),
            'catalog_directory': str(self.catalog_directory) if self.catalog_directory else None,
        }
