"""
Data manager for JSON question bank files and quiz data validation.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Question


class DataManager:
    """Manages loading and validation of JSON question bank files."""

    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
    MAX_OPTIONS = 20  # four rows of five option buttons

    def __init__(self, quiz_directory: str = "./quizzes/"):
        """
        Initialize DataManager with quiz directory path.

        Args:
            quiz_directory: Path to directory containing JSON quiz files
        """
        self.quiz_directory = Path(quiz_directory)
        self.loaded_quizzes: Dict[str, List[Question]] = {}
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []
        self.fallback_quiz_created = False

    def load_quiz_files(self) -> Dict[str, List[Question]]:
        """
        Load all JSON files from the quiz directory.

        Files that fail to load are reported through get_load_errors. When no
        file can be loaded an in-memory fallback quiz is provided instead.

        Returns:
            Dictionary mapping quiz names to lists of Question objects
        """
        self.loaded_quizzes.clear()
        self.load_errors.clear()
        self.fallback_quiz_created = False

        directory_result = self._check_quiz_directory()
        if not directory_result['success']:
            self.load_errors.append(directory_result['error'])
            return self._create_fallback_quiz()

        scan_result = self._scan_quiz_files()
        if not scan_result['success']:
            self.load_errors.append(scan_result['error'])
            return self._create_fallback_quiz()

        json_files = scan_result['files']
        if not json_files:
            self.logger.warning(f"No JSON files found in {self.quiz_directory}")
            self.load_errors.append(f"No quiz files found in {self.quiz_directory}")
            return self._create_fallback_quiz()

        successful_loads = 0
        for json_file in json_files:
            load_result = self._load_quiz_file_safely(json_file)
            if load_result['success']:
                successful_loads += 1
            else:
                self.load_errors.append(f"{json_file.name}: {load_result['error']}")

        if successful_loads == 0:
            self.logger.error("No quiz files could be loaded successfully")
            self.load_errors.append("All quiz files failed to load")
            return self._create_fallback_quiz()

        self.logger.info(f"Successfully loaded {successful_loads} quiz files")
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} loading errors")

        return self.loaded_quizzes

    def _load_single_file(self, file_path: Path) -> Optional[dict]:
        """
        Load and parse a single JSON file.

        Args:
            file_path: Path to the JSON file

        Returns:
            Parsed JSON data or None if loading failed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self.logger.error(f"Invalid JSON in {file_path}: {e}")
            return None
        except OSError as e:
            self.logger.error(f"Failed to read quiz file {file_path}: {e}")
            return None

        if not self.validate_quiz_structure(data):
            self.logger.error(f"Invalid quiz structure in {file_path}")
            return None
        return data

    def validate_quiz_structure(self, data: Any) -> bool:
        """
        Validate that JSON data has the correct question bank structure.

        Expected structure:
        {
            "quiz": [
                {
                    "prompt": str,
                    "options": [str, ...],
                    "correct_index": int,
                    "explanation": str,
                    "code_example": str,  # Optional
                    "tip": str            # Optional
                }
            ]
        }

        Args:
            data: Parsed JSON data to validate

        Returns:
            True if structure is valid, False otherwise
        """
        if not isinstance(data, dict):
            self.logger.error("Quiz data must be a JSON object")
            return False

        if "quiz" not in data:
            self.logger.error("Quiz data must contain a 'quiz' key")
            return False

        quiz_array = data["quiz"]
        if not isinstance(quiz_array, list):
            self.logger.error("'quiz' value must be an array")
            return False

        if not quiz_array:
            self.logger.error("Quiz array cannot be empty")
            return False

        for i, question_data in enumerate(quiz_array):
            if not isinstance(question_data, dict):
                self.logger.error(f"Question {i} must be an object")
                return False

            for field_name in ("prompt", "options", "correct_index", "explanation"):
                if field_name not in question_data:
                    self.logger.error(f"Question {i} missing '{field_name}' field")
                    return False

            if not isinstance(question_data["prompt"], str) or not question_data["prompt"].strip():
                self.logger.error(f"Question {i} 'prompt' field must be a non-empty string")
                return False

            if not isinstance(question_data["explanation"], str):
                self.logger.error(f"Question {i} 'explanation' field must be a string")
                return False

            options = question_data["options"]
            if not isinstance(options, list) or not options:
                self.logger.error(f"Question {i} 'options' field must be a non-empty array")
                return False

            if len(options) > self.MAX_OPTIONS:
                self.logger.error(
                    f"Question {i} has {len(options)} options, maximum is {self.MAX_OPTIONS}"
                )
                return False

            if not all(isinstance(option, str) for option in options):
                self.logger.error(f"Question {i} options must all be strings")
                return False

            correct_index = question_data["correct_index"]
            if not isinstance(correct_index, int) or isinstance(correct_index, bool):
                self.logger.error(f"Question {i} 'correct_index' field must be an integer")
                return False

            if not 0 <= correct_index < len(options):
                self.logger.error(
                    f"Question {i} 'correct_index' {correct_index} is outside 0-{len(options) - 1}"
                )
                return False

            for optional_field in ("code_example", "tip"):
                value = question_data.get(optional_field)
                if value is not None and not isinstance(value, str):
                    self.logger.error(f"Question {i} '{optional_field}' field must be a string")
                    return False

        return True

    def _parse_questions(self, quiz_data: dict) -> List[Question]:
        """
        Parse validated quiz data into Question objects.

        Args:
            quiz_data: Validated quiz data dictionary

        Returns:
            List of Question objects
        """
        questions = []

        for question_data in quiz_data["quiz"]:
            question = Question(
                prompt=question_data["prompt"],
                options=tuple(question_data["options"]),
                correct_index=question_data["correct_index"],
                explanation=question_data["explanation"],
                code_example=question_data.get("code_example") or None,
                tip=question_data.get("tip") or None
            )
            questions.append(question)

        return questions

    def get_available_quizzes(self) -> List[str]:
        """
        Get list of available quiz names.

        Returns:
            List of quiz names (without file extensions)
        """
        return list(self.loaded_quizzes.keys())

    def get_quiz_questions(self, quiz_name: str) -> Optional[List[Question]]:
        """
        Retrieve questions for a specific quiz.

        Args:
            quiz_name: Name of the quiz (without file extension)

        Returns:
            List of Question objects for the quiz, or None if quiz not found
        """
        return self.loaded_quizzes.get(quiz_name)

    def quiz_exists(self, quiz_name: str) -> bool:
        return quiz_name in self.loaded_quizzes

    def get_question_count(self, quiz_name: str) -> int:
        """
        Get the number of questions in a specific quiz.

        Returns:
            Number of questions in the quiz, or 0 if quiz not found
        """
        questions = self.get_quiz_questions(quiz_name)
        return len(questions) if questions else 0

    def _check_quiz_directory(self) -> Dict[str, Any]:
        """
        Check that the quiz directory exists and is readable.

        Returns:
            Dictionary with success status and error message if applicable
        """
        try:
            if not self.quiz_directory.is_dir():
                return {
                    'success': False,
                    'error': f"Quiz directory not found: {self.quiz_directory}"
                }

            if not os.access(self.quiz_directory, os.R_OK):
                return {
                    'success': False,
                    'error': f"Permission denied: Cannot read from {self.quiz_directory}"
                }

            return {'success': True}

        except OSError as e:
            return {
                'success': False,
                'error': f"System error accessing {self.quiz_directory}: {e}"
            }

    def _scan_quiz_files(self) -> Dict[str, Any]:
        """
        Scan quiz directory for JSON files.

        Returns:
            Dictionary with success status, files list, and error message if applicable
        """
        try:
            json_files = sorted(self.quiz_directory.glob("*.json"))
            return {
                'success': True,
                'files': json_files
            }
        except PermissionError:
            return {
                'success': False,
                'error': f"Permission denied: Cannot read directory {self.quiz_directory}",
                'files': []
            }
        except OSError as e:
            return {
                'success': False,
                'error': f"System error scanning {self.quiz_directory}: {e}",
                'files': []
            }

    def _load_quiz_file_safely(self, json_file: Path) -> Dict[str, Any]:
        """
        Load a single quiz file and store its questions under the file's stem.

        Args:
            json_file: Path to the JSON file to load

        Returns:
            Dictionary with success status and error message if applicable
        """
        try:
            file_size = json_file.stat().st_size
            if file_size > self.MAX_FILE_SIZE:
                return {
                    'success': False,
                    'error': f"File too large ({file_size / 1024 / 1024:.1f}MB). "
                             f"Maximum size is {self.MAX_FILE_SIZE / 1024 / 1024}MB"
                }

            quiz_data = self._load_single_file(json_file)
            if quiz_data is None:
                return {
                    'success': False,
                    'error': "Invalid JSON structure or validation failed"
                }

            questions = self._parse_questions(quiz_data)
            quiz_name = json_file.stem
            self.loaded_quizzes[quiz_name] = questions
            self.logger.info(f"Loaded quiz '{quiz_name}' with {len(questions)} questions")

            return {'success': True}

        except PermissionError:
            return {
                'success': False,
                'error': "Permission denied"
            }
        except OSError as e:
            return {
                'success': False,
                'error': f"System error: {e}"
            }

    def _create_fallback_quiz(self) -> Dict[str, List[Question]]:
        """
        Create a minimal fallback quiz in memory when no quiz file could be loaded.

        Returns:
            Dictionary with the fallback quiz loaded
        """
        fallback_questions = [
            Question(
                prompt="¿Qué es un puntero en C++?",
                options=(
                    "Un tipo de dato que almacena el valor de una variable",
                    "Un tipo de dato que almacena la dirección de memoria de una variable",
                ),
                correct_index=1,
                explanation="Un puntero almacena la dirección de memoria de una variable."
            )
        ]

        self.loaded_quizzes["fallback_quiz"] = fallback_questions
        self.fallback_quiz_created = True
        self.logger.warning("Created fallback quiz due to file loading failures")

        return self.loaded_quizzes

    def get_load_errors(self) -> List[str]:
        """
        Get list of errors encountered during the last load operation.

        Returns:
            List of error messages
        """
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def is_fallback_quiz_active(self) -> bool:
        return self.fallback_quiz_created

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the last loading operation.

        Returns:
            Dictionary with loading statistics and status
        """
        return {
            'total_quizzes': len(self.loaded_quizzes),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors(),
            'fallback_active': self.is_fallback_quiz_active(),
            'quiz_directory': str(self.quiz_directory),
            'available_quizzes': list(self.loaded_quizzes.keys())
        }
