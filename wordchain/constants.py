"""Constants for the Word Chain bot.

Centralizes limits, defaults and Discord component ids so the engine,
the embeds and the cog agree on them.
"""
from __future__ import annotations

VERSION = "1.0.0"

# ============================================================================
# COLOR PALETTE
# ============================================================================

COLOR_LOBBY = 0x57F287     # Lobby / waiting for players
COLOR_PLAYING = 0x2ECC71   # Game in progress
COLOR_ENDED = 0x3498DB     # Game over with a winner
COLOR_NO_WINNER = 0x95A5A6  # Game over, nobody won
COLOR_SETTINGS = 0x5865F2  # Settings panel
COLOR_ERROR = 0xED4245     # Errors, failures

# ============================================================================
# EMOJIS
# ============================================================================

EMOJI_CROWN = "👑"
EMOJI_SKULL = "☠️"
EMOJI_FIRE = "🔥"
EMOJI_ROBOT = "🤖"
EMOJI_CLOCK = "⏰"
EMOJI_CROSS = "❌"
EMOJI_CHECK = "✅"
EMOJI_DICE = "🎲"
EMOJI_GAME = "🎮"
EMOJI_TURN = "▶️"
EMOJI_BLANK = "▫️"
EMOJI_FLAG = "🏳️"

# ============================================================================
# GAME RULES
# ============================================================================

MAX_PLAYERS = 10
WIN_THRESHOLD = 100

# Prompt point value: clamp(len(prefix) + randint(0, PROMPT_BONUS_MAX), MIN, MAX)
PROMPT_MIN_POINTS = 3
PROMPT_MAX_POINTS = 10
PROMPT_BONUS_MAX = 2

# Suffix lengths taken from the previous word
LONG_WORD_LENGTH = 4   # words at least this long give a 3-letter prefix
LONG_PREFIX = 3
SHORT_WORD_LENGTH = 2  # words at least this long give a 2-letter prefix
SHORT_PREFIX = 2

# ============================================================================
# SESSION DEFAULTS
# ============================================================================

DIFFICULTIES = ("Easy", "Medium", "Hard")
DEFAULT_DIFFICULTY = "Medium"
COMMAND_DIFFICULTY = "Hard"  # difficulty used by the wordchain command
DEFAULT_LANGUAGE = "ID"
DEFAULT_TIME_LIMIT = 30      # seconds per turn
DEFAULT_MAX_ROLLS = 1        # per player, None means unlimited
DEFAULT_BOT_ENABLED = True

TIME_LIMIT_CHOICES = (15, 30, 45, 60, 90)
MAX_ROLLS_CHOICES = (0, 1, 2, 3, 5, None)

# ============================================================================
# BOT OPPONENT
# ============================================================================

BOT_USER_ID = "BOT"
BOT_DISPLAY_NAME = "Villain Bot"

# Common Indonesian endings tried after the required prefix, in order
BOT_SUFFIXES = (
    "an", "kan", "i", "nya", "lah", "kah", "mu", "ku", "ta",
    "er", "ir", "ur", "at", "it", "ut",
)
BOT_RANDOM_ATTEMPTS = 30

# Fraction of the time limit the bot "thinks" before answering
BOT_THINK_MIN = 0.3
BOT_THINK_SPREAD = 0.4

# ============================================================================
# ORACLE (KBBI API)
# ============================================================================

KBBI_API_URL = "https://kbbi-internal-api.vercel.app/kbbi"
KBBI_RANDOM_PATH = "_random"
KBBI_API_TIMEOUT = 10

# ============================================================================
# DISCORD
# ============================================================================

# Message deletion delays (in seconds)
DELETE_DELAY_ERROR = 5      # Rejected answers, failed actions
DELETE_DELAY_INFO = 8       # Informational messages

# Chat messages starting with these are never treated as answers
COMMAND_PREFIXES = ("..", "/")

# Component custom ids
CUSTOM_ID_JOIN = "wc_join"
CUSTOM_ID_LEAVE = "wc_leave"
CUSTOM_ID_START = "wc_start"
CUSTOM_ID_EXIT = "wc_exit"
CUSTOM_ID_KICK = "wc_kick"
CUSTOM_ID_SETTINGS = "wc_settings"
CUSTOM_ID_BACK = "wc_back_to_lobby"
CUSTOM_ID_GIVE_UP = "wc_giveup"
CUSTOM_ID_ROLL = "wc_roll"
CUSTOM_ID_DIFFICULTY = "wc_difficulty_select"
CUSTOM_ID_TIME = "wc_time_select"
CUSTOM_ID_ROLLS = "wc_rolls_select"
CUSTOM_ID_BOT = "wc_bot_select"
CUSTOM_ID_KICK_TARGET = "wc_kick_target"

FOOTER_TEXT = "Sambung Kata"
LOBBY_FOOTER = f"Max {MAX_PLAYERS} players | Based on KBBI"
