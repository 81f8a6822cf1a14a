"""
Lesson sections and the question bank each one is tested with.
"""
from types import MappingProxyType
from typing import List, Mapping, Optional

from .models import QuizSection

_SECTIONS = (
    QuizSection("introduccion", "Introducción", "introduccion"),
    QuizSection("declaracion", "Declaración", "declaracion"),
    QuizSection("operaciones", "Operaciones", "operaciones"),
    QuizSection("arreglos", "Arreglos", "arreglos"),
    QuizSection("gestion", "Gestión Memoria", "gestion"),
    QuizSection("funciones", "Funciones", "funciones"),
    QuizSection("avanzados", "Avanzados", "avanzados"),
    QuizSection("patrones", "Patrones Diseño", "patrones"),
)

QUIZ_SECTIONS: Mapping[str, QuizSection] = MappingProxyType(
    {section.id: section for section in _SECTIONS}
)

DEFAULT_SECTION = "introduccion"


def list_sections() -> List[QuizSection]:
    """Sections in lesson order."""
    return list(_SECTIONS)


def get_section(section_id: str) -> Optional[QuizSection]:
    """Look up a section by id, None if it does not exist."""
    return QUIZ_SECTIONS.get(section_id)
