"""
Explanation enricher for answered quiz questions.

Builds the explanation shown after a learner checks an answer: the question's
own explanation followed by a code sample, a comparison note and a closing
tip. Which extra segments appear is decided by an ordered table of keyword
rules evaluated against the lowercased prompt.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .models import ExplanationSegment, Question, SegmentKind

SEGMENT_SEPARATOR = "\n\n"

FUNCTION_POINTER_SNIPPET = (
    "Ejemplo:\n"
    "```cpp\n"
    "double (*ptrFuncion)(int, int); // Puntero a una función que recibe dos ints y devuelve un double\n"
    "```"
)

OPERATOR_SNIPPET = (
    "Ejemplo de uso:\n"
    "```cpp\n"
    "int num = 10;\n"
    "int* ptr = &num; // & obtiene la dirección\n"
    "int valor = *ptr; // * accede al valor\n"
    "```"
)

JAVA_COMPARISON_NOTE = (
    "Comparación con Java: En Java, la gestión de memoria es automática a través "
    "del recolector de basura, y no hay acceso directo a las direcciones de memoria "
    "como en C++."
)

TIP_PREFIX = "Consejo: "

DEFAULT_TIP = (
    "Siempre inicializa tus punteros y libera la memoria cuando ya no la "
    "necesites para evitar fugas de memoria."
)


@dataclass(frozen=True)
class EnrichmentRule:
    """A keyword set and the segment it contributes when the prompt matches."""
    name: str
    keywords: Tuple[str, ...]
    kind: SegmentKind
    produce: Callable[[Question, str], Optional[str]]

    def matches(self, prompt: str) -> bool:
        return any(keyword in prompt for keyword in self.keywords)


@dataclass(frozen=True)
class SnippetRule:
    """Fallback code sample used when a question has no example of its own."""
    name: str
    keywords: Tuple[str, ...]
    snippet: str

    def matches(self, prompt: str) -> bool:
        return any(keyword in prompt for keyword in self.keywords)


# Most specific first: a prompt about function pointers that also mentions an
# operator gets the function pointer sample.
DEFAULT_SNIPPET_RULES: Tuple[SnippetRule, ...] = (
    SnippetRule("function_pointer", ("puntero a función",), FUNCTION_POINTER_SNIPPET),
    SnippetRule("operator", ("operador",), OPERATOR_SNIPPET),
)


def _code_example(question: Question, prompt: str) -> Optional[str]:
    if question.code_example:
        return question.code_example
    for rule in DEFAULT_SNIPPET_RULES:
        if rule.matches(prompt):
            return rule.snippet
    return None


def _comparison_note(question: Question, prompt: str) -> Optional[str]:
    return JAVA_COMPARISON_NOTE


ENRICHMENT_RULES: Tuple[EnrichmentRule, ...] = (
    EnrichmentRule("code", ("sintaxis", "código", "operador"), SegmentKind.CODE, _code_example),
    EnrichmentRule("comparison", ("java", "diferencia"), SegmentKind.COMPARISON, _comparison_note),
)


def build_explanation_segments(question: Question) -> List[ExplanationSegment]:
    """
    Build the ordered segments of an enriched explanation.

    Args:
        question: The answered question

    Returns:
        Segments in display order: explanation, code sample, comparison note
        and tip. The tip is always present and always last.
    """
    prompt = (question.prompt or "").lower()
    segments: List[ExplanationSegment] = []

    if question.explanation:
        segments.append(ExplanationSegment(SegmentKind.TEXT, question.explanation))

    for rule in ENRICHMENT_RULES:
        if not rule.matches(prompt):
            continue
        text = rule.produce(question, prompt)
        if text:
            segments.append(ExplanationSegment(rule.kind, text))

    segments.append(ExplanationSegment(SegmentKind.TIP, TIP_PREFIX + (question.tip or DEFAULT_TIP)))
    return segments


def render_segments(segments: List[ExplanationSegment]) -> str:
    """Join segments into display text separated by blank lines."""
    return SEGMENT_SEPARATOR.join(segment.text for segment in segments)


def enrich_explanation(question: Question) -> str:
    """Return the display-ready enriched explanation for a question."""
    return render_segments(build_explanation_segments(question))
