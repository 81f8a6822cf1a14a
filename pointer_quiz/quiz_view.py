"""
Discord presentation of a quiz session: embeds plus an interactive view.

Each QuizView owns the controller of one learner's session. Button presses
are turned into controller intents and the message is re-rendered from the
snapshot the controller publishes after every transition.
"""
import logging
from typing import Any, Dict, List, Optional

import discord

from .explanation import TIP_PREFIX, build_explanation_segments
from .models import (
    CompletionVerdict,
    OptionStatus,
    QuizSection,
    SegmentKind,
    SessionSnapshot,
)
from .quiz_controller import QuizController, QuizControllerError

logger = logging.getLogger(__name__)

COLOR_QUESTION = 0x0099ff
COLOR_CORRECT = 0x00ff00
COLOR_INCORRECT = 0xff0000
COLOR_WARNING = 0xffaa00

FIELD_VALUE_LIMIT = 1024
CODE_FENCE = "```"
PROGRESS_BAR_WIDTH = 10

OPTION_MARKERS = {
    OptionStatus.NEUTRAL: "▫️",
    OptionStatus.SELECTED: "👉",
    OptionStatus.CORRECT: "✅",
    OptionStatus.INCORRECT: "❌",
}

OPTION_STYLES = {
    OptionStatus.NEUTRAL: discord.ButtonStyle.secondary,
    OptionStatus.SELECTED: discord.ButtonStyle.primary,
    OptionStatus.CORRECT: discord.ButtonStyle.success,
    OptionStatus.INCORRECT: discord.ButtonStyle.danger,
}

SEGMENT_TITLES = {
    SegmentKind.TEXT: "📖 Explicación",
    SegmentKind.CODE: "💻 Ejemplo",
    SegmentKind.COMPARISON: "☕ Java",
    SegmentKind.TIP: "💡 Consejo",
}

VERDICT_MESSAGES = {
    CompletionVerdict.MASTERED: "¡Excelente! Has dominado este tema por completo.",
    CompletionVerdict.GOOD: (
        "¡Buen trabajo! Has comprendido la mayor parte del tema, "
        "pero puedes repasar algunos conceptos."
    ),
    CompletionVerdict.NEEDS_REVIEW: (
        "Te recomendamos repasar este tema para comprender mejor los conceptos."
    ),
}

VERDICT_COLORS = {
    CompletionVerdict.MASTERED: COLOR_CORRECT,
    CompletionVerdict.GOOD: COLOR_WARNING,
    CompletionVerdict.NEEDS_REVIEW: COLOR_INCORRECT,
}

LOAD_ERROR_TITLE = "Error al cargar el quiz"
LOAD_ERROR_MESSAGE = (
    "Lo sentimos, ha ocurrido un error al cargar las preguntas. "
    "Por favor, inténtalo de nuevo más tarde."
)


def option_letter(index: int) -> str:
    return chr(ord("A") + index)


def truncate(text: str, limit: int = FIELD_VALUE_LIMIT) -> str:
    """Shorten text to fit a Discord embed field."""
    if len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def truncate_code(text: str, limit: int = FIELD_VALUE_LIMIT) -> str:
    """Shorten a segment that may hold a code block, keeping the fence closed."""
    if len(text) <= limit:
        return text
    closing = "…\n" + CODE_FENCE
    kept = text[:limit - len(closing)]
    if kept.count(CODE_FENCE) % 2 == 0:
        return truncate(text, limit)
    return kept + closing


def progress_bar(fraction: float, width: int = PROGRESS_BAR_WIDTH) -> str:
    filled = round(fraction * width)
    return "▰" * filled + "▱" * (width - filled)


def feedback_heading(is_correct: bool) -> str:
    return "¡Correcto!" if is_correct else "¡Incorrecto!"


def build_question_embed(
    snapshot: SessionSnapshot,
    option_statuses: List[OptionStatus],
    section_name: Optional[str] = None
) -> discord.Embed:
    """
    Render the current question of a session.

    Args:
        snapshot: Session snapshot to render
        option_statuses: Display status of each option, in option order
        section_name: Lesson section shown in the author line

    Returns:
        Embed with the prompt, the options and, once checked, the enriched explanation
    """
    question = snapshot.question
    if snapshot.is_answer_checked:
        color = COLOR_CORRECT if snapshot.last_answer_correct else COLOR_INCORRECT
    else:
        color = COLOR_QUESTION

    option_lines = [
        f"{OPTION_MARKERS[status]} **{option_letter(i)}.** {option}"
        for i, (option, status) in enumerate(zip(question.options, option_statuses))
    ]

    embed = discord.Embed(
        title=f"Pregunta {snapshot.current_index + 1} de {snapshot.total_questions}",
        description=f"**{question.prompt}**\n\n" + "\n".join(option_lines),
        color=color
    )
    if section_name:
        embed.set_author(name=f"Quiz · {section_name}")

    if snapshot.is_answer_checked:
        embed.add_field(
            name="Resultado",
            value=feedback_heading(bool(snapshot.last_answer_correct)),
            inline=False
        )
        for segment in build_explanation_segments(question):
            text = segment.text
            if segment.kind == SegmentKind.TIP and text.startswith(TIP_PREFIX):
                text = text[len(TIP_PREFIX):]
            embed.add_field(
                name=SEGMENT_TITLES[segment.kind],
                value=truncate_code(text) if segment.kind == SegmentKind.CODE else truncate(text),
                inline=False
            )

    embed.set_footer(
        text=f"{progress_bar(snapshot.progress_fraction)} "
             f"{snapshot.current_index + 1}/{snapshot.total_questions} · "
             f"Aciertos: {snapshot.score}"
    )
    return embed


def build_completion_embed(completion_info: Dict[str, Any], section_name: Optional[str] = None) -> discord.Embed:
    """
    Render the final result of a completed session.

    Args:
        completion_info: Result of QuizController.get_quiz_completion_info()
        section_name: Lesson section shown in the author line
    """
    verdict = completion_info['verdict']
    embed = discord.Embed(
        title="¡Quiz completado!",
        description=(
            f"Has acertado {completion_info['score']} de "
            f"{completion_info['total_questions']} preguntas.\n"
            f"Puntuación: {completion_info['percentage']}%"
        ),
        color=VERDICT_COLORS[verdict]
    )
    if section_name:
        embed.set_author(name=f"Quiz · {section_name}")
    embed.add_field(name="Valoración", value=VERDICT_MESSAGES[verdict], inline=False)

    answers = completion_info.get('answers') or []
    if answers:
        summary = " ".join(
            f"{record.question_index + 1}{'✅' if record.is_correct else '❌'}"
            for record in answers
        )
        embed.add_field(name="Respuestas", value=truncate(summary), inline=False)

    return embed


def build_load_error_embed() -> discord.Embed:
    """Generic message shown when a question bank cannot start a session."""
    return discord.Embed(
        title=LOAD_ERROR_TITLE,
        description=LOAD_ERROR_MESSAGE,
        color=COLOR_INCORRECT
    )


def build_sections_embed(sections: List[QuizSection], question_counts: Dict[str, int]) -> discord.Embed:
    """
    List the lesson sections and whether a quiz is available for each one.

    Args:
        sections: Sections in lesson order
        question_counts: Number of loaded questions per quiz name
    """
    lines = []
    for section in sections:
        count = question_counts.get(section.quiz_name, 0)
        if count:
            lines.append(f"✅ **{section.name}** (`{section.id}`) · {count} preguntas")
        else:
            lines.append(f"⚠️ **{section.name}** (`{section.id}`) · sin quiz disponible")

    embed = discord.Embed(
        title="📚 Secciones",
        description="\n".join(lines),
        color=COLOR_QUESTION
    )
    embed.set_footer(text="Usa /quiz <sección> para comenzar")
    return embed


class QuizView(discord.ui.View):
    """Interactive quiz message for a single learner."""

    def __init__(
        self,
        controller: QuizController,
        owner_id: int,
        section_name: Optional[str] = None,
        timeout: Optional[float] = 600
    ):
        super().__init__(timeout=timeout)
        self.controller = controller
        self.owner_id = owner_id
        self.section_name = section_name
        self.message: Optional[discord.Message] = None
        self.snapshot = controller.snapshot()

        controller.subscribe(self._on_session_changed)
        self._build_components()

    def _on_session_changed(self, snapshot: SessionSnapshot) -> None:
        self.snapshot = snapshot
        self._build_components()

    def _build_components(self) -> None:
        self.clear_items()
        snapshot = self.snapshot
        if snapshot.is_completed:
            return

        option_count = len(snapshot.question.options)
        for i in range(option_count):
            status = self.controller.option_status(i)
            button = discord.ui.Button(
                style=OPTION_STYLES[status],
                label=option_letter(i),
                disabled=snapshot.is_answer_checked,
                row=min(i // 5, 3)
            )
            button.callback = self._make_option_callback(i)
            self.add_item(button)

        controls_row = min((option_count - 1) // 5 + 1, 4)

        check_button = discord.ui.Button(
            style=discord.ButtonStyle.primary,
            label="Comprobar",
            disabled=snapshot.selected_option is None or snapshot.is_answer_checked,
            row=controls_row
        )
        check_button.callback = self.handle_check
        self.add_item(check_button)

        next_button = discord.ui.Button(
            style=discord.ButtonStyle.success,
            label="Finalizar" if snapshot.is_last_question else "Siguiente",
            disabled=not snapshot.is_answer_checked,
            row=controls_row
        )
        next_button.callback = self.handle_next
        self.add_item(next_button)

    def _make_option_callback(self, index: int):
        async def callback(interaction: discord.Interaction):
            await self.handle_select(interaction, index)
        return callback

    def build_embed(self) -> discord.Embed:
        """Render the embed for the current snapshot."""
        if self.snapshot.is_completed:
            return build_completion_embed(
                self.controller.get_quiz_completion_info(),
                self.section_name
            )
        statuses = [
            self.controller.option_status(i)
            for i in range(len(self.snapshot.question.options))
        ]
        return build_question_embed(self.snapshot, statuses, self.section_name)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id == self.owner_id:
            return True
        await interaction.response.send_message(
            "Este quiz pertenece a otra persona. Usa /quiz para comenzar el tuyo.",
            ephemeral=True
        )
        return False

    async def handle_select(self, interaction: discord.Interaction, index: int) -> None:
        try:
            self.controller.select_option(index)
        except QuizControllerError as e:
            await self._reject(interaction, "select_option", e)
            return
        await self._refresh(interaction)

    async def handle_check(self, interaction: discord.Interaction) -> None:
        try:
            self.controller.check_answer()
        except QuizControllerError as e:
            await self._reject(interaction, "check_answer", e)
            return
        await self._refresh(interaction)

    async def handle_next(self, interaction: discord.Interaction) -> None:
        try:
            self.controller.next_question()
        except QuizControllerError as e:
            await self._reject(interaction, "next_question", e)
            return
        await self._refresh(interaction)

    async def _refresh(self, interaction: discord.Interaction) -> None:
        embed = self.build_embed()
        if self.snapshot.is_completed:
            await interaction.response.edit_message(embed=embed, view=None)
            self.controller.unsubscribe(self._on_session_changed)
            self.stop()
        else:
            await interaction.response.edit_message(embed=embed, view=self)

    async def _reject(self, interaction: discord.Interaction, operation: str, error: Exception) -> None:
        # Buttons are disabled whenever an intent is not allowed, so reaching
        # this means the rendered message is out of sync with the session.
        logger.error(f"Quiz view sent {operation} out of order: {error}")
        await interaction.response.send_message(
            "Esa acción no está disponible en este momento.",
            ephemeral=True
        )

    async def on_timeout(self) -> None:
        self.controller.unsubscribe(self._on_session_changed)
        for item in self.children:
            item.disabled = True
        if self.message is None:
            return
        try:
            await self.message.edit(view=self)
        except discord.HTTPException as e:
            logger.warning(f"Failed to disable timed out quiz message: {e}")
