"""
Unit tests for the lesson section catalog.
"""
import unittest

from pointer_quiz.sections import DEFAULT_SECTION, QUIZ_SECTIONS, get_section, list_sections


class TestSections(unittest.TestCase):
    """Test cases for section lookups."""

    def test_sections_in_lesson_order(self):
        self.assertEqual(
            [section.id for section in list_sections()],
            ["introduccion", "declaracion", "operaciones", "arreglos",
             "gestion", "funciones", "avanzados", "patrones"]
        )

    def test_get_section(self):
        section = get_section("gestion")
        self.assertEqual(section.name, "Gestión Memoria")
        self.assertEqual(section.quiz_name, "gestion")

    def test_get_unknown_section(self):
        self.assertIsNone(get_section("inexistente"))

    def test_default_section_exists(self):
        self.assertIsNotNone(get_section(DEFAULT_SECTION))

    def test_catalog_is_read_only(self):
        with self.assertRaises(TypeError):
            QUIZ_SECTIONS["nueva"] = get_section(DEFAULT_SECTION)

    def test_list_sections_returns_copy(self):
        sections = list_sections()
        sections.clear()
        self.assertEqual(len(list_sections()), 8)


if __name__ == '__main__':
    unittest.main()
