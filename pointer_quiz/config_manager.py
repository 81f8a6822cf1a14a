"""
Configuration manager for pointer quiz settings and parameters.
"""
import logging
from pathlib import Path
from typing import Any, Dict

from .models import QuizSettings


class ConfigManager:
    """Manages quiz configuration settings."""

    # Default configuration values
    DEFAULT_PASS_THRESHOLD = 0.7
    DEFAULT_VIEW_TIMEOUT = 600
    DEFAULT_EPHEMERAL = True
    DEFAULT_QUIZ_DIRECTORY = "./quizzes/"

    # Validation limits
    MIN_VIEW_TIMEOUT = 60
    MAX_VIEW_TIMEOUT = 900  # interaction tokens expire after 15 minutes

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._global_settings = QuizSettings(
            pass_threshold=self.DEFAULT_PASS_THRESHOLD,
            view_timeout=self.DEFAULT_VIEW_TIMEOUT,
            ephemeral=self.DEFAULT_EPHEMERAL
        )
        self._quiz_directory = self.DEFAULT_QUIZ_DIRECTORY

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            Copy of the current QuizSettings
        """
        return QuizSettings(
            pass_threshold=self._global_settings.pass_threshold,
            view_timeout=self._global_settings.view_timeout,
            ephemeral=self._global_settings.ephemeral
        )

    def set_pass_threshold(self, threshold: float) -> Dict[str, Any]:
        """
        Set the fraction of correct answers considered a good result.

        Args:
            threshold: Value between 0 and 1 inclusive

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            error_msg = f"Pass threshold must be a number, got {type(threshold).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(threshold).__name__}"
            }

        if not 0 <= threshold <= 1:
            error_msg = f"Pass threshold must be between 0 and 1, got {threshold}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Pass threshold must be between 0 and 1"
            }

        self._global_settings.pass_threshold = float(threshold)
        self.logger.info(f"Pass threshold set to {threshold}")
        return {
            'success': True,
            'message': f"Pass threshold set to {threshold}",
            'user_message': f"✅ Pass threshold set to {threshold:.0%}"
        }

    def get_pass_threshold(self) -> float:
        return self._global_settings.pass_threshold

    def set_view_timeout(self, timeout: int) -> Dict[str, Any]:
        """
        Set how long an interactive quiz message keeps accepting answers.

        Args:
            timeout: Timeout in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(timeout, bool) or not isinstance(timeout, int):
            error_msg = f"View timeout must be an integer, got {type(timeout).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(timeout).__name__}"
            }

        if timeout < self.MIN_VIEW_TIMEOUT:
            error_msg = f"View timeout must be at least {self.MIN_VIEW_TIMEOUT} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timeout too short: Minimum is {self.MIN_VIEW_TIMEOUT} seconds"
            }

        if timeout > self.MAX_VIEW_TIMEOUT:
            error_msg = f"View timeout cannot exceed {self.MAX_VIEW_TIMEOUT} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timeout too long: Maximum is {self.MAX_VIEW_TIMEOUT} seconds "
                                f"({self.MAX_VIEW_TIMEOUT // 60} minutes)"
            }

        self._global_settings.view_timeout = timeout
        self.logger.info(f"View timeout set to {timeout} seconds")
        return {
            'success': True,
            'message': f"View timeout set to {timeout} seconds",
            'user_message': f"✅ Quiz messages stay active for {timeout} seconds"
        }

    def get_view_timeout(self) -> int:
        return self._global_settings.view_timeout

    def set_ephemeral(self, ephemeral: bool) -> Dict[str, Any]:
        """
        Set whether quiz messages are only visible to the learner.

        Args:
            ephemeral: True for private quiz messages

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(ephemeral, bool):
            error_msg = f"Ephemeral must be a boolean, got {type(ephemeral).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected true/false, got {type(ephemeral).__name__}"
            }

        self._global_settings.ephemeral = ephemeral
        visibility = "private" if ephemeral else "public"
        self.logger.info(f"Quiz messages set to {visibility}")
        return {
            'success': True,
            'message': f"Quiz messages set to {visibility}",
            'user_message': f"✅ Quiz messages will be {visibility}"
        }

    def get_ephemeral(self) -> bool:
        return self._global_settings.ephemeral

    def set_quiz_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory path for question bank files.

        Args:
            directory: Path to quiz files directory

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(directory, str):
            error_msg = f"Quiz directory must be a string, got {type(directory).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a path string, got {type(directory).__name__}"
            }

        if not directory.strip():
            error_msg = "Quiz directory cannot be empty"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Directory path cannot be empty"
            }

        try:
            normalized_path = str(Path(directory).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid directory path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {directory}"
            }

        self._quiz_directory = normalized_path
        self.logger.info(f"Quiz directory set to {normalized_path}")
        return {
            'success': True,
            'message': f"Quiz directory set to {normalized_path}",
            'user_message': f"✅ Quiz directory set to {normalized_path}"
        }

    def get_quiz_directory(self) -> str:
        return self._quiz_directory

    def apply_configuration(self, quiz_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply the 'quiz' section of config.json.

        Invalid values are skipped and reported; the previous values stay in place.

        Args:
            quiz_config: Mapping with optional quiz_directory, pass_threshold,
                view_timeout and ephemeral keys

        Returns:
            Dictionary with overall success and the list of errors
        """
        setters = {
            'quiz_directory': self.set_quiz_directory,
            'pass_threshold': self.set_pass_threshold,
            'view_timeout': self.set_view_timeout,
            'ephemeral': self.set_ephemeral,
        }

        errors = []
        for key, setter in setters.items():
            if key not in quiz_config:
                continue
            result = setter(quiz_config[key])
            if not result['success']:
                errors.append(f"{key}: {result['error']}")

        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} errors")
        else:
            self.logger.info("Configuration applied successfully")

        return {
            'success': not errors,
            'errors': errors
        }

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._global_settings = QuizSettings(
            pass_threshold=self.DEFAULT_PASS_THRESHOLD,
            view_timeout=self.DEFAULT_VIEW_TIMEOUT,
            ephemeral=self.DEFAULT_EPHEMERAL
        )
        self._quiz_directory = self.DEFAULT_QUIZ_DIRECTORY
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

        threshold = self._global_settings.pass_threshold
        if not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid pass threshold: {threshold}")

        timeout = self._global_settings.view_timeout
        if (not isinstance(timeout, int) or
                timeout < self.MIN_VIEW_TIMEOUT or
                timeout > self.MAX_VIEW_TIMEOUT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid view timeout: {timeout}")

        if not isinstance(self._global_settings.ephemeral, bool):
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid ephemeral setting: {self._global_settings.ephemeral}"
            )

        if not isinstance(self._quiz_directory, str) or not self._quiz_directory.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid quiz directory: {self._quiz_directory}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        visibility = "private" if self._global_settings.ephemeral else "public"
        return (
            f"Quiz Settings:\n"
            f"• Pass threshold: {self._global_settings.pass_threshold:.0%}\n"
            f"• Message timeout: {self._global_settings.view_timeout} seconds\n"
            f"• Visibility: {visibility}\n"
            f"• Quiz Directory: {self._quiz_directory}"
        )
