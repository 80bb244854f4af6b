"""
Telegram Bot Integration for the Procurement Agent.

Each Telegram chat is one conversation: the chat id is used as the session id,
so the agent router keeps its history and resolved context across messages.
"""

import logging
from typing import Optional

from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from procurement_agent.agent.router import AgentRouter, get_router
from procurement_agent.config import get_config
from procurement_agent.exceptions import ConfigurationError
from procurement_agent.models import AgentReply

# Set up logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096

WELCOME_MESSAGE = """👋 Hi! I'm your procurement assistant.

I can help you:

1️⃣ Find suppliers - "find top 3 suppliers for steel beam in Asia"
2️⃣ Request quotes - "10 units, send RFQ"
3️⃣ Place orders - "Place order with Company 1"
4️⃣ Check inventory - "what's low on stock?"

Type any message to get started!"""

HELP_MESSAGE = """🆘 Procurement Agent help

Commands:
/start - Start a new conversation
/help - Show this help
/clear - Clear the conversation history

Tips:
• Name a material, a region and how many suppliers you want
• Give a quantity to turn a search into an RFQ
• Order from a quote by its company number"""

# Router used by the handlers; set by create_application
_router: Optional[AgentRouter] = None


def _get_router() -> AgentRouter:
    return _router or get_router()


def session_id_for(chat_id: int) -> str:
    return f"telegram-{chat_id}"


def chunk_text(text: str, size: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split a reply into Telegram-sized chunks."""
    if not text:
        return []
    return [text[i:i + size] for i in range(0, len(text), size)]


def format_reply(reply: AgentReply) -> str:
    """Render an agent reply, listing its actions as next steps."""
    text = reply.display_text
    if reply.success and reply.actions:
        steps = [f"• {action.type.replace('_', ' ')}: {action.parameter}" for action in reply.actions]
        text = f"{text}\n\nNext steps:\n" + "\n".join(steps)
    return text


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle the /start command."""
    chat_id = update.effective_chat.id
    _get_router().reset_session(session_id_for(chat_id))  # Start fresh
    await update.message.reply_text(WELCOME_MESSAGE)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle the /help command."""
    await update.message.reply_text(HELP_MESSAGE)


async def clear_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle the /clear command to clear conversation history."""
    chat_id = update.effective_chat.id
    _get_router().reset_session(session_id_for(chat_id))
    await update.message.reply_text("✅ History cleared! You can start a new conversation.")


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Route an incoming text message to the agent."""
    chat_id = update.effective_chat.id
    user_message = update.message.text

    logger.info(f"📨 Incoming message from chat_id={chat_id}: {user_message}")

    try:
        await update.message.chat.send_action("typing")

        reply = await _get_router().handle_message(session_id_for(chat_id), user_message)
        if not reply.success:
            logger.warning(f"Agent failure for chat_id={chat_id}: {reply.error}")

        for chunk in chunk_text(format_reply(reply)):
            await update.message.reply_text(chunk)

    except Exception as e:
        logger.error(f"Error processing message: {e}", exc_info=True)
        await update.message.reply_text(
            "❌ Sorry, something went wrong while processing your message. Please try again."
        )


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Handle errors."""
    logger.error(f"Update {update} caused error {context.error}")


async def _post_init(application: Application):
    """Called after the application is initialized (inside the event loop)."""
    try:
        from procurement_agent.services.heartbeat import init_heartbeat

        init_heartbeat(_get_router().context)
        logger.info("🔔 Heartbeat scheduler started")
    except Exception as e:
        logger.warning(f"Heartbeat setup failed (continuing without): {e}")


async def _post_shutdown(application: Application):
    from procurement_agent.services.heartbeat import stop_heartbeat

    stop_heartbeat()


def create_application(router: Optional[AgentRouter] = None) -> Application:
    """Create and configure the Telegram application."""
    global _router
    config = get_config()

    if not config.telegram_bot_token:
        raise ConfigurationError("TELEGRAM_BOT_TOKEN not configured")

    _router = router

    application = (
        Application.builder()
        .token(config.telegram_bot_token)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )

    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("clear", clear_command))
    application.add_handler(
        MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message)
    )
    application.add_error_handler(error_handler)

    return application


def run_polling(router: Optional[AgentRouter] = None):
    """Run the bot using polling."""
    logger.info("Starting Procurement Agent Telegram bot (polling mode)...")

    application = create_application(router)
    application.run_polling(allowed_updates=Update.ALL_TYPES)
