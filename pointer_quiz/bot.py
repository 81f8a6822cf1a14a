import discord
from discord import app_commands
from discord.ext import commands
import logging
import os
from typing import Optional

from .data_manager import DataManager
from .config_manager import ConfigManager
from .quiz_controller import QuizController, InvalidQuestionBank
from .quiz_view import QuizView, build_load_error_embed, build_sections_embed
from .sections import get_section, list_sections

logger = logging.getLogger(__name__)


class QuizBot(commands.Bot):
    """Discord bot serving the C++ pointer lesson quizzes"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,  # Fallback prefix, mainly using slash commands
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.data_manager: Optional[DataManager] = None
        self.config_manager: Optional[ConfigManager] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            if self.app_config:
                self.apply_configuration()

            self.data_manager = DataManager(self.config_manager.get_quiz_directory())
            self.load_quiz_data()

            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def apply_configuration(self):
        """Apply settings from the configuration file; invalid values keep their defaults."""
        result = self.config_manager.apply_configuration(self.app_config.get('quiz', {}))
        for error in result['errors']:
            logger.warning(f"Ignoring invalid configuration value: {error}")

    async def setup_commands(self):
        """Register all slash commands"""
        section_choices = [
            app_commands.Choice(name=section.name, value=section.id)
            for section in list_sections()
        ]

        @self.tree.command(name="help", description="Muestra los comandos disponibles")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="sections", description="Lista las secciones con quiz disponible")
        async def sections_command(interaction: discord.Interaction):
            await self.handle_sections(interaction)

        @self.tree.command(name="quiz", description="Comienza el quiz de una sección")
        @app_commands.describe(section="Sección de la guía de punteros")
        @app_commands.choices(section=section_choices)
        async def quiz_command(interaction: discord.Interaction, section: app_commands.Choice[str]):
            await self.handle_quiz(interaction, section.value)

        logger.info("Slash commands registered successfully")

    def load_quiz_data(self):
        """Load question banks from the quiz directory"""
        loaded_quizzes = self.data_manager.load_quiz_files()
        logger.info(f"Loaded {len(loaded_quizzes)} quiz files from {self.data_manager.quiz_directory}")

        for section in list_sections():
            if not self.data_manager.quiz_exists(section.quiz_name):
                logger.warning(f"No question bank loaded for section '{section.id}'")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="🎯 Guía de Punteros en C++ · Quiz",
                description="Pon a prueba lo aprendido en cada sección de la guía",
                color=0x00ff00
            )

            help_embed.add_field(
                name="🎮 Comandos",
                value=(
                    "`/help` - Muestra este mensaje\n"
                    "`/sections` - Lista las secciones y sus quizzes\n"
                    "`/quiz <sección>` - Comienza el quiz de una sección"
                ),
                inline=False
            )

            help_embed.add_field(
                name="📝 Cómo funciona",
                value=(
                    "Elige una opción, pulsa **Comprobar** para ver la explicación "
                    "y después **Siguiente** para continuar."
                ),
                inline=False
            )

            settings_summary = self.config_manager.get_settings_summary()
            help_embed.add_field(
                name="⚙️ Configuración",
                value=f"```\n{settings_summary}\n```",
                inline=False
            )

            if self.data_manager.has_load_errors():
                help_embed.add_field(
                    name="⚠️ Problemas de carga",
                    value="Algunos archivos de preguntas no se pudieron cargar. Revisa los logs.",
                    inline=False
                )

            help_embed.set_footer(text="Usa los comandos de barra para interactuar con el bot")

            await interaction.response.send_message(embed=help_embed, ephemeral=True)

        except discord.HTTPException as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "No se pudo mostrar la ayuda", "❌ Error")

    async def handle_sections(self, interaction: discord.Interaction):
        """Handle /sections command"""
        try:
            sections = list_sections()
            question_counts = {
                section.quiz_name: self.data_manager.get_question_count(section.quiz_name)
                for section in sections
            }
            embed = build_sections_embed(sections, question_counts)
            await interaction.response.send_message(embed=embed, ephemeral=True)

        except discord.HTTPException as e:
            logger.error(f"Error in sections command: {e}")
            await self.send_error_response(interaction, "No se pudo mostrar la lista de secciones", "❌ Error")

    async def handle_quiz(self, interaction: discord.Interaction, section_id: str):
        """Handle /quiz command: start a session for the learner and post its view"""
        section = get_section(section_id)
        if section is None or not self.data_manager.quiz_exists(section.quiz_name):
            logger.error(f"No quiz available for section: {section_id}")
            await self.send_error_response(
                interaction,
                f"No hay quiz disponible para la sección: {section_id}",
                "❌ Quiz no disponible"
            )
            return

        settings = self.config_manager.get_quiz_settings()
        questions = self.data_manager.get_quiz_questions(section.quiz_name)

        try:
            controller = QuizController(
                questions,
                quiz_name=section.id,
                pass_threshold=settings.pass_threshold
            )
        except InvalidQuestionBank as e:
            logger.error(f"Could not start quiz for section '{section.id}': {e}")
            await self.send_embed_response(interaction, build_load_error_embed())
            return

        try:
            view = QuizView(
                controller,
                owner_id=interaction.user.id,
                section_name=section.name,
                timeout=settings.view_timeout
            )
        except ValueError as e:
            # discord.py rejects layouts that exceed the component grid
            logger.error(f"Could not build quiz view for section '{section.id}': {e}")
            await self.send_embed_response(interaction, build_load_error_embed())
            return

        try:
            await interaction.response.send_message(
                embed=view.build_embed(),
                view=view,
                ephemeral=settings.ephemeral
            )
            view.message = await interaction.original_response()
            logger.info(f"User {interaction.user.id} started quiz '{section.id}'")

        except discord.HTTPException as e:
            logger.error(f"Failed to post quiz for section '{section.id}': {e}")
            view.stop()
            await self.send_error_response(interaction, "No se pudo iniciar el quiz", "❌ Error")

    async def send_embed_response(self, interaction: discord.Interaction, embed: discord.Embed):
        """Send an ephemeral embed, as a follow-up if the interaction was already answered"""
        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send response embed: {e}")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send error response to user with fallback handling"""
        embed = discord.Embed(
            title=title,
            description=message,
            color=0xff0000
        )
        embed.set_footer(text="Si el problema persiste, usa /help para ver los comandos disponibles")

        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)

        except discord.HTTPException as e:
            logger.error(f"Failed to send error embed: {e}")
            try:
                simple_message = f"{title}: {message}"
                if interaction.response.is_done():
                    await interaction.followup.send(simple_message, ephemeral=True)
                else:
                    await interaction.response.send_message(simple_message, ephemeral=True)
            except discord.HTTPException:
                logger.error("Failed to send fallback error message")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting pointer quiz bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
