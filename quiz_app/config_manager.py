"""
Configuration manager for quiz settings and storage locations.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import QuizSettings


class ConfigManager:
    """Manages quiz configuration settings."""

    # Default configuration values
    DEFAULT_QUESTION_COUNT = 10
    DEFAULT_TIMER_DURATION = 30
    DEFAULT_ADVANCE_DELAY = 3
    DEFAULT_TICK_INTERVAL = 1.0
    DEFAULT_CATALOG_DIRECTORY = None  # Built-in catalog only
    DEFAULT_PROFILE_PATH = "./data/profile.json"

    # Validation limits
    MIN_TIMER_DURATION = 5
    MAX_TIMER_DURATION = 300  # 5 minutes
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 100
    MIN_ADVANCE_DELAY = 0
    MAX_ADVANCE_DELAY = 30

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            timer_duration=self.DEFAULT_TIMER_DURATION,
            advance_delay=self.DEFAULT_ADVANCE_DELAY,
            tick_interval=self.DEFAULT_TICK_INTERVAL,
        )
        self._catalog_directory: Optional[str] = self.DEFAULT_CATALOG_DIRECTORY
        self._profile_path = self.DEFAULT_PROFILE_PATH

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            A copy of the current QuizSettings
        """
        return QuizSettings(
            question_count=self._settings.question_count,
            timer_duration=self._settings.timer_duration,
            advance_delay=self._settings.advance_delay,
            tick_interval=self._settings.tick_interval,
        )

    def _validate_int(self, value: Any, name: str, minimum: int, maximum: int, unit: str = "") -> Optional[Dict[str, Any]]:
        """Return an error result for an invalid integer setting, or None when valid."""
        suffix = f" {unit}" if unit else ""
        if isinstance(value, bool) or not isinstance(value, int):
            error_msg = f"{name} must be an integer, got {type(value).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(value).__name__}"
            }
        if value < minimum:
            error_msg = f"{name} must be at least {minimum}{suffix}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too low: Minimum is {minimum}{suffix}"
            }
        if value > maximum:
            error_msg = f"{name} cannot exceed {maximum}{suffix}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too high: Maximum is {maximum}{suffix}"
            }
        return None

    def set_question_count(self, count: int) -> Dict[str, Any]:
        """
        Set how many questions one play-through should ask.

        Args:
            count: Target question count

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        failure = self._validate_int(count, "Question count", self.MIN_QUESTION_COUNT, self.MAX_QUESTION_COUNT)
        if failure:
            return failure

        self._settings.question_count = count
        self.logger.info(f"Question count set to {count}")
        return {
            'success': True,
            'message': f"Question count set to {count}",
            'user_message': f"✅ Question count set to {count}"
        }

    def get_question_count(self) -> int:
        return self._settings.question_count

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown for each question.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        failure = self._validate_int(
            duration, "Timer duration", self.MIN_TIMER_DURATION, self.MAX_TIMER_DURATION, "seconds"
        )
        if failure:
            return failure

        self._settings.timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"✅ Timer set to {duration} seconds"
        }

    def get_timer_duration(self) -> int:
        return self._settings.timer_duration

    def set_advance_delay(self, delay: int) -> Dict[str, Any]:
        """
        Set how long the explanation stays visible before the next question.

        Args:
            delay: Delay in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        failure = self._validate_int(
            delay, "Advance delay", self.MIN_ADVANCE_DELAY, self.MAX_ADVANCE_DELAY, "seconds"
        )
        if failure:
            return failure

        self._settings.advance_delay = delay
        self.logger.info(f"Advance delay set to {delay} seconds")
        return {
            'success': True,
            'message': f"Advance delay set to {delay} seconds",
            'user_message': f"✅ Next question appears {delay} seconds after answering"
        }

    def get_advance_delay(self) -> int:
        return self._settings.advance_delay

    def set_catalog_directory(self, directory: Optional[str]) -> Dict[str, Any]:
        """
        Set the directory holding extra catalog release files.

        Args:
            directory: Path to the directory, or None for the built-in catalog only

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if directory is None:
            self._catalog_directory = None
            self.logger.info("Catalog directory cleared, using built-in questions")
            return {
                'success': True,
                'message': "Using built-in catalog",
                'user_message': "✅ Using the built-in question catalog"
            }

        if not isinstance(directory, str) or not directory.strip():
            error_msg = "Catalog directory must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Directory path cannot be empty"
            }

        try:
            normalized_path = str(Path(directory).expanduser().resolve())
        except (OSError, RuntimeError, ValueError) as e:
            error_msg = f"Invalid directory path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {directory}"
            }

        self._catalog_directory = normalized_path
        self.logger.info(f"Catalog directory set to {normalized_path}")
        return {
            'success': True,
            'message': f"Catalog directory set to {normalized_path}",
            'user_message': f"✅ Catalog directory set to {normalized_path}"
        }

    def get_catalog_directory(self) -> Optional[str]:
        return self._catalog_directory

    def set_profile_path(self, path: str) -> Dict[str, Any]:
        """
        Set the JSON file the profile record is stored in.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(path, str) or not path.strip():
            error_msg = "Profile path must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Profile path cannot be empty"
            }
        if Path(path).suffix.lower() != ".json":
            error_msg = f"Profile path must point to a .json file, got {path}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Profile file must have a .json extension"
            }

        self._profile_path = path
        self.logger.info(f"Profile path set to {path}")
        return {
            'success': True,
            'message': f"Profile path set to {path}",
            'user_message': f"✅ Profile will be stored in {path}"
        }

    def get_profile_path(self) -> str:
        return self._profile_path

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply the ``quiz`` and ``storage`` sections of a config.json mapping.

        Invalid values are logged and leave the current setting untouched. If the
        resulting settings still fail validation, everything is reset to defaults.

        Args:
            config: Parsed configuration file

        Returns:
            Error messages for rejected values
        """
        errors = []
        quiz_config = config.get('quiz', {}) or {}
        storage_config = config.get('storage', {}) or {}

        setters = [
            (quiz_config, 'question_count', self.set_question_count),
            (quiz_config, 'timer_duration', self.set_timer_duration),
            (quiz_config, 'advance_delay', self.set_advance_delay),
            (quiz_config, 'catalog_directory', self.set_catalog_directory),
            (storage_config, 'profile_path', self.set_profile_path),
        ]
        for section, key, setter in setters:
            if key not in section:
                continue
            result = setter(section[key])
            if not result['success']:
                errors.append(f"{key}: {result['error']}")

        validation = self.validate_settings()
        if not validation["valid"]:
            self.logger.warning(f"Configuration failed validation, using defaults: {validation['issues']}")
            self.reset_to_defaults()
            errors.extend(validation["issues"])

        if errors:
            self.logger.warning(f"Ignored {len(errors)} invalid configuration values")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            timer_duration=self.DEFAULT_TIMER_DURATION,
            advance_delay=self.DEFAULT_ADVANCE_DELAY,
            tick_interval=self.DEFAULT_TICK_INTERVAL,
        )
        self._catalog_directory = self.DEFAULT_CATALOG_DIRECTORY
        self._profile_path = self.DEFAULT_PROFILE_PATH
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        checks = [
            ("question count", self._settings.question_count, self.MIN_QUESTION_COUNT, self.MAX_QUESTION_COUNT),
            ("timer duration", self._settings.timer_duration, self.MIN_TIMER_DURATION, self.MAX_TIMER_DURATION),
            ("advance delay", self._settings.advance_delay, self.MIN_ADVANCE_DELAY, self.MAX_ADVANCE_DELAY),
        ]
        for name, value, minimum, maximum in checks:
            if isinstance(value, bool) or not isinstance(value, int) or not minimum <= value <= maximum:
                validation_result["valid"] = False
                validation_result["issues"].append(f"Invalid {name}: {value}")

        if not isinstance(self._profile_path, str) or not self._profile_path.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid profile path: {self._profile_path}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        catalog = self.get_catalog_directory() or "built-in"
        return (
            f"Quiz Settings:\n"
            f"• Questions: {self.get_question_count()}\n"
            f"• Timer: {self.get_timer_duration()} seconds\n"
            f"• Next question after: {self.get_advance_delay()} seconds\n"
            f"• Catalog: {catalog}\n"
            f"• Profile: {self.get_profile_path()}"
        )
