"""
Unit tests for the Discord bot commands with mocked Discord API.
"""
import os
import unittest
from unittest.mock import Mock, AsyncMock, patch

import discord

from pointer_quiz.bot import QuizBot, run_bot
from pointer_quiz.config_manager import ConfigManager
from pointer_quiz.data_manager import DataManager
from pointer_quiz.models import Question
from pointer_quiz.quiz_view import LOAD_ERROR_TITLE, QuizView
from tests.test_fixtures import (
    MockDiscordObjects,
    TestFixtures,
    SHIPPED_QUIZ_DIRECTORY,
    async_test,
)


def http_exception():
    return discord.HTTPException(Mock(status=500, reason="Internal Server Error"), "fallo")


class TestQuizBotCommands(unittest.TestCase):
    """Test slash command handlers."""

    def _make_bot(self):
        bot = QuizBot()
        bot.config_manager = ConfigManager()
        bot.data_manager = Mock(spec=DataManager)
        bot.data_manager.quiz_exists.return_value = True
        bot.data_manager.get_quiz_questions.return_value = TestFixtures.create_sample_questions()
        bot.data_manager.get_question_count.return_value = 3
        bot.data_manager.has_load_errors.return_value = False
        return bot

    @async_test
    async def test_handle_quiz_posts_view(self):
        bot = self._make_bot()
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_quiz(interaction, "introduccion")

        bot.data_manager.get_quiz_questions.assert_called_once_with("introduccion")
        interaction.response.send_message.assert_awaited_once()
        kwargs = interaction.response.send_message.call_args.kwargs
        self.assertTrue(kwargs['ephemeral'])
        self.assertEqual(kwargs['embed'].title, "Pregunta 1 de 3")

        view = kwargs['view']
        self.assertIsInstance(view, QuizView)
        self.assertEqual(view.owner_id, interaction.user.id)
        self.assertEqual(view.timeout, 600)
        self.assertEqual(view.section_name, "Introducción")
        self.assertIs(view.message, interaction.original_response.return_value)
        view.stop()

    @async_test
    async def test_handle_quiz_uses_configured_settings(self):
        bot = self._make_bot()
        bot.config_manager.set_ephemeral(False)
        bot.config_manager.set_view_timeout(120)
        bot.config_manager.set_pass_threshold(0.5)
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_quiz(interaction, "gestion")

        kwargs = interaction.response.send_message.call_args.kwargs
        self.assertFalse(kwargs['ephemeral'])
        self.assertEqual(kwargs['view'].timeout, 120)
        self.assertEqual(kwargs['view'].controller.pass_threshold, 0.5)
        self.assertEqual(kwargs['view'].controller.quiz_name, "gestion")
        kwargs['view'].stop()

    @async_test
    async def test_handle_quiz_unknown_section(self):
        bot = self._make_bot()
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_quiz(interaction, "inexistente")

        bot.data_manager.get_quiz_questions.assert_not_called()
        embed = interaction.response.send_message.call_args.kwargs['embed']
        self.assertEqual(embed.title, "❌ Quiz no disponible")
        self.assertIn("inexistente", embed.description)

    @async_test
    async def test_handle_quiz_missing_bank(self):
        bot = self._make_bot()
        bot.data_manager.quiz_exists.return_value = False
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_quiz(interaction, "patrones")

        embed = interaction.response.send_message.call_args.kwargs['embed']
        self.assertEqual(embed.title, "❌ Quiz no disponible")

    @async_test
    async def test_handle_quiz_invalid_bank(self):
        bot = self._make_bot()
        bot.data_manager.get_quiz_questions.return_value = []
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_quiz(interaction, "introduccion")

        kwargs = interaction.response.send_message.call_args.kwargs
        self.assertEqual(kwargs['embed'].title, LOAD_ERROR_TITLE)
        self.assertNotIn('view', kwargs)

    @async_test
    async def test_handle_quiz_view_does_not_fit(self):
        """A question with too many options for the button grid gets the load error embed."""
        bot = self._make_bot()
        bot.data_manager.get_quiz_questions.return_value = [
            Question(
                prompt="¿Cuál?",
                options=tuple(f"opción {n}" for n in range(21)),
                correct_index=0,
                explanation=""
            )
        ]
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_quiz(interaction, "introduccion")

        interaction.response.send_message.assert_awaited_once()
        kwargs = interaction.response.send_message.call_args.kwargs
        self.assertEqual(kwargs['embed'].title, LOAD_ERROR_TITLE)
        self.assertNotIn('view', kwargs)

    @async_test
    async def test_handle_quiz_send_failure(self):
        bot = self._make_bot()
        interaction = MockDiscordObjects.create_mock_interaction()
        interaction.response.send_message.side_effect = [http_exception(), None]

        await bot.handle_quiz(interaction, "introduccion")

        self.assertEqual(interaction.response.send_message.await_count, 2)
        view = interaction.response.send_message.call_args_list[0].kwargs['view']
        self.assertTrue(view.is_finished())
        embed = interaction.response.send_message.call_args.kwargs['embed']
        self.assertEqual(embed.description, "No se pudo iniciar el quiz")

    @async_test
    async def test_handle_help(self):
        bot = self._make_bot()
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_help(interaction)

        kwargs = interaction.response.send_message.call_args.kwargs
        self.assertTrue(kwargs['ephemeral'])
        values = "\n".join(field.value for field in kwargs['embed'].fields)
        self.assertIn("/quiz", values)
        self.assertIn("Pass threshold: 70%", values)
        self.assertNotIn("⚠️ Problemas de carga", [field.name for field in kwargs['embed'].fields])

    @async_test
    async def test_handle_help_reports_load_errors(self):
        bot = self._make_bot()
        bot.data_manager.has_load_errors.return_value = True
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_help(interaction)

        embed = interaction.response.send_message.call_args.kwargs['embed']
        self.assertIn("⚠️ Problemas de carga", [field.name for field in embed.fields])

    @async_test
    async def test_handle_sections(self):
        bot = self._make_bot()
        interaction = MockDiscordObjects.create_mock_interaction()

        await bot.handle_sections(interaction)

        embed = interaction.response.send_message.call_args.kwargs['embed']
        self.assertEqual(embed.title, "📚 Secciones")
        self.assertIn("**Patrones Diseño** (`patrones`) · 3 preguntas", embed.description)
        self.assertEqual(bot.data_manager.get_question_count.call_count, 8)


class TestQuizBotResponses(unittest.TestCase):
    """Test response helpers and their fallbacks."""

    @async_test
    async def test_send_error_response_uses_followup_when_done(self):
        bot = QuizBot()
        interaction = MockDiscordObjects.create_mock_interaction()
        interaction.response.is_done.return_value = True

        await bot.send_error_response(interaction, "Algo falló")

        interaction.followup.send.assert_awaited_once()
        interaction.response.send_message.assert_not_awaited()

    @async_test
    async def test_send_error_response_falls_back_to_text(self):
        bot = QuizBot()
        interaction = MockDiscordObjects.create_mock_interaction()
        interaction.response.send_message.side_effect = [http_exception(), None]

        await bot.send_error_response(interaction, "Algo falló", "❌ Error")

        self.assertEqual(interaction.response.send_message.await_count, 2)
        fallback_call = interaction.response.send_message.call_args
        self.assertEqual(fallback_call.args[0], "❌ Error: Algo falló")
        self.assertTrue(fallback_call.kwargs['ephemeral'])

    @async_test
    async def test_send_error_response_gives_up_quietly(self):
        bot = QuizBot()
        interaction = MockDiscordObjects.create_mock_interaction()
        interaction.response.send_message.side_effect = http_exception()

        await bot.send_error_response(interaction, "Algo falló")

        self.assertEqual(interaction.response.send_message.await_count, 2)

    @async_test
    async def test_send_embed_response(self):
        bot = QuizBot()
        interaction = MockDiscordObjects.create_mock_interaction()
        embed = discord.Embed(title="Prueba")

        await bot.send_embed_response(interaction, embed)

        interaction.response.send_message.assert_awaited_once_with(embed=embed, ephemeral=True)


class TestQuizBotSetup(unittest.TestCase):
    """Test bot start up against the shipped question banks."""

    @async_test
    async def test_command_prefix_from_config(self):
        bot = QuizBot({'bot': {'command_prefix': '?'}})
        self.assertEqual(bot.command_prefix, '?')

    @async_test
    async def test_setup_hook_registers_commands(self):
        bot = QuizBot({'quiz': {'quiz_directory': str(SHIPPED_QUIZ_DIRECTORY), 'view_timeout': 300}})

        await bot.setup_hook()

        names = sorted(command.name for command in bot.tree.get_commands())
        self.assertEqual(names, ["help", "quiz", "sections"])
        self.assertEqual(bot.config_manager.get_view_timeout(), 300)
        self.assertEqual(len(bot.data_manager.get_available_quizzes()), 8)

        quiz_command = bot.tree.get_command("quiz")
        section_param = quiz_command.parameters[0]
        self.assertEqual(section_param.name, "section")
        self.assertEqual(
            [choice.value for choice in section_param.choices],
            ["introduccion", "declaracion", "operaciones", "arreglos",
             "gestion", "funciones", "avanzados", "patrones"]
        )

    @async_test
    async def test_setup_hook_ignores_invalid_config_values(self):
        bot = QuizBot({'quiz': {'quiz_directory': str(SHIPPED_QUIZ_DIRECTORY), 'pass_threshold': 7}})

        await bot.setup_hook()

        self.assertEqual(bot.config_manager.get_pass_threshold(), 0.7)

    @async_test
    async def test_run_bot_without_token(self):
        with patch.dict(os.environ, {}, clear=True), \
                patch('pointer_quiz.bot.QuizBot') as bot_class:
            await run_bot()

        bot_class.assert_not_called()

    @async_test
    async def test_run_bot_closes_on_login_failure(self):
        with patch('pointer_quiz.bot.QuizBot') as bot_class:
            bot = bot_class.return_value
            bot.start = AsyncMock(side_effect=discord.LoginFailure("bad token"))
            bot.close = AsyncMock()
            bot.is_closed.return_value = False

            await run_bot("token", {})

        bot.start.assert_awaited_once_with("token")
        bot.close.assert_awaited_once()


if __name__ == '__main__':
    unittest.main()
