from pathlib import Path
import logging

import discord
import pydantic
from discord.ext import commands
from dotenv import load_dotenv

from wordchain.config import get_settings
from wordchain.constants import VERSION
from wordchain.engine import EngineSettings, WordChainEngine
from wordchain.exceptions import ConfigurationError
from wordchain.oracle import WordOracle

BASE_DIR = Path(__file__).resolve().parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

try:
    settings = get_settings()
except pydantic.ValidationError as e:
    raise ConfigurationError(f"Invalid configuration: {e}") from e

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('wordchain.log', encoding='utf-8', mode='a'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger('wordchain_bot')

intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(command_prefix=settings.bot_prefix, intents=intents, help_command=None)
bot.engine = None  # Set in setup_hook


async def load_cogs():
    """Load all bot cogs."""
    try:
        await bot.load_extension('wordchain.cogs.events')
        await bot.load_extension('wordchain.cogs.wordchain')
        logger.info("Loaded all cogs: events, wordchain")
    except Exception as e:
        logger.error(f"Failed to load cogs: {e}")
        raise


@bot.event
async def setup_hook():
    """Setup hook called before bot connects to Discord.

    This runs before on_ready and is the proper place to load cogs.
    """
    oracle = WordOracle(settings.oracle_base_url, settings.oracle_timeout)
    bot.engine = WordChainEngine(oracle, settings=EngineSettings.from_settings(settings))
    logger.info(f"Word chain engine initialized (v{VERSION}, dictionary at {settings.oracle_base_url})")

    await load_cogs()


if __name__ == "__main__":
    bot.run(settings.discord_token)
