"""
Cogno Timeline — Telegram Bot.

Telegram is the chat panel of the timeline: every line the user sends is
a chat entry, `#name` starts a task, `##name` ends it, and /today draws
the hour grid.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import InlineQueryResultArticle, InputTextMessageContent, Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
    InlineQueryHandler,
    MessageHandler,
    filters,
)

from src.config import settings
from src.core.renderer import render_hour_grid, render_totals
from src.core.timeline_service import (
    CategoryResponse,
    ChatResponse,
    ResponseKind,
    ServiceResponse,
    TimelineService,
)
from src.data.models import ChatEntry, ChatType, InvalidTimestampError
from src.ports.timeline_port import TimelineError

if TYPE_CHECKING:
    from src.ports.timeline_port import TimelinePort

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LOG_LIMIT = 30
_MAX_INLINE_RESULTS = 20


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Sessions: one TimelineService per user per day
# ---------------------------------------------------------------------------


def _now() -> datetime:
    """Local wall-clock time, naive, matching the backend's timestamps."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


async def _get_session(
    user_id: int, context: ContextTypes.DEFAULT_TYPE, now: datetime,
) -> TimelineService:
    """Return the user's session for today, loading it on first use or a new day.

    Raises TimelineError if the backend can't be read.
    """
    sessions: dict[int, TimelineService] = context.bot_data.setdefault("sessions", {})
    today = now.date().isoformat()
    session = sessions.get(user_id)
    if session is None or session.date != today:
        port: TimelinePort = context.bot_data["timeline"]
        session = await TimelineService.load(
            port, today,
            day_start_hour=settings.DAY_START_HOUR,
            day_end_hour=settings.DAY_END_HOUR,
        )
        sessions[user_id] = session
        logger.info("Session for user %d loaded for %s", user_id, today)
    return session


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _format_response(response: ServiceResponse) -> str | None:
    """Turn a service response into reply text (None = nothing to say)."""
    if response.kind is ResponseKind.MESSAGE:
        # Plain chat lines are only echoed when something went wrong.
        if isinstance(response, ChatResponse) and response.warning:
            return f"⚠️ {response.warning}"
        return None

    if response.kind is ResponseKind.NO_ACTION and not response.message:
        return None

    prefix = {
        ResponseKind.TASK_STARTED: "▶️ ",
        ResponseKind.TASK_ENDED: "⏹ ",
        ResponseKind.INFO: "ℹ️ ",
        ResponseKind.CATEGORY_ADDED: "✅ ",
        ResponseKind.CHAT_UPDATED: "✏️ ",
        ResponseKind.CHAT_DELETED: "🗑 ",
        ResponseKind.ERROR: "❌ ",
    }.get(response.kind, "")
    text = f"{prefix}{response.message}"

    if isinstance(response, ChatResponse) and response.warning:
        text += f"\n⚠️ {response.warning}"
    return text


def _format_entry(entry: ChatEntry) -> str:
    tag = f" ({entry.task_name})" if entry.type is ChatType.USER and entry.task_name else ""
    return f"[{entry.id}] {entry.time} {entry.text}{tag}"


def _format_day(session: TimelineService, now: datetime, title: str) -> str:
    lines = [title, "", render_hour_grid(session.hour_bars(now))]
    minutes = {name: m for name, m in session.tracked_minutes(now).items() if m > 0}
    if minutes:
        lines += ["", render_totals(minutes)]
    running = [t.name for t in session.running_tasks()]
    if running:
        lines += ["", f"Running: {', '.join(running)}"]
        if session.active_task_name:
            lines.append(f"Current input task: {session.active_task_name}")
    if session.last_ended_task:
        lines += ["", f"Last ended: {session.last_ended_task.name}"]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to Cogno!\n\n"
        "Chat through your day and I'll keep the timeline:\n"
        "• #math starts (or registers) the task math\n"
        "• ##math ends it\n"
        "• Anything else is a note on the current input task\n\n"
        "Type /help for the full command list."
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "Available commands:\n"
        "/today — Today's hour grid\n"
        "/day YYYY-MM-DD — Another day's hour grid (read-only)\n"
        "/categories — Registered task categories\n"
        "/addcategory <name> [#hex] — Register a category\n"
        "/switch — Cycle the current input task\n"
        "/log — Today's chat lines with their ids\n"
        "/edit <id> <text> — Change a chat line\n"
        "/delete <id> — Remove a chat line\n"
        "@<bot> #par — Complete a task name inline\n"
        "/help — Show this message"
    )


@authorized_only
async def cmd_today(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /today — show today's hour grid."""
    now = _now()
    try:
        session = await _get_session(update.effective_user.id, context, now)
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("/today timeline error: %s", exc)
        await update.message.reply_text("Couldn't load today's timeline. Please try again later.")
        return

    await update.message.reply_text(_format_day(session, now, f"Timeline for {session.date}"))


@authorized_only
async def cmd_day(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /day YYYY-MM-DD — show another day's hour grid."""
    args = context.args
    if not args or not _ISO_DATE_RE.match(args[0]):
        await update.message.reply_text("Usage: /day YYYY-MM-DD")
        return
    try:
        target = date.fromisoformat(args[0]).isoformat()
    except ValueError:
        await update.message.reply_text(f"{args[0]} is not a valid date.")
        return

    port: TimelinePort = context.bot_data["timeline"]
    try:
        session = await TimelineService.load(
            port, target,
            day_start_hour=settings.DAY_START_HOUR,
            day_end_hour=settings.DAY_END_HOUR,
        )
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("/day timeline error for %s: %s", target, exc)
        await update.message.reply_text(f"Couldn't load the timeline for {target}.")
        return

    await update.message.reply_text(_format_day(session, _now(), f"Timeline for {target}"))


@authorized_only
async def cmd_categories(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /categories — list registered categories."""
    try:
        session = await _get_session(update.effective_user.id, context, _now())
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("/categories error: %s", exc)
        await update.message.reply_text("Couldn't load categories. Please try again.")
        return

    if not session.categories:
        await update.message.reply_text("No categories yet. Start one with #name.")
        return

    lines = ["Categories:"]
    for c in session.categories:
        lines.append(f"• {c.name} ({c.color})")
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_addcategory(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addcategory <name> [#hex] — register a category."""
    args = list(context.args or [])
    if not args:
        await update.message.reply_text("Usage: /addcategory <name> [#hex]")
        return

    color = None
    if len(args) > 1 and args[-1].startswith("#"):
        color = args.pop()
    name = " ".join(args)

    try:
        session = await _get_session(update.effective_user.id, context, _now())
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("/addcategory error: %s", exc)
        await update.message.reply_text("Couldn't load categories. Please try again.")
        return

    response = await session.register_category(name, color)
    text = _format_response(response)
    if isinstance(response, CategoryResponse) and response.category:
        text = f"{text} Color: {response.category.color}"
    await update.message.reply_text(text)


@authorized_only
async def cmd_switch(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /switch — cycle the current input task among running tasks."""
    try:
        session = await _get_session(update.effective_user.id, context, _now())
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("/switch error: %s", exc)
        await update.message.reply_text("Couldn't load today's timeline. Please try again.")
        return

    name = session.cycle_active_task()
    if name is None:
        await update.message.reply_text("No task is running.")
        return
    await update.message.reply_text(f"Current input task: {name}")


@authorized_only
async def cmd_log(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /log — today's chat lines with the ids /edit and /delete take."""
    try:
        session = await _get_session(update.effective_user.id, context, _now())
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("/log error: %s", exc)
        await update.message.reply_text("Couldn't load today's timeline. Please try again.")
        return

    if not session.entries:
        await update.message.reply_text("No chat lines yet today.")
        return

    lines = [_format_entry(e) for e in session.entries[-_LOG_LIMIT:]]
    await update.message.reply_text("\n".join(lines))


def _parse_entry_id(raw: str) -> int | None:
    return int(raw) if raw.isdigit() else None


@authorized_only
async def cmd_edit(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /edit <id> <text> — replace the text of a chat line."""
    parts = update.message.text.split(maxsplit=2)
    entry_id = _parse_entry_id(parts[1]) if len(parts) == 3 else None
    if entry_id is None:
        await update.message.reply_text("Usage: /edit <id> <new text> (ids are shown by /log)")
        return

    try:
        session = await _get_session(update.effective_user.id, context, _now())
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("/edit error: %s", exc)
        await update.message.reply_text("Couldn't load today's timeline. Please try again.")
        return

    response = await session.update_chat(entry_id, parts[2])
    await update.message.reply_text(_format_response(response))


@authorized_only
async def cmd_delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete <id> — remove a chat line."""
    args = context.args or []
    entry_id = _parse_entry_id(args[0]) if len(args) == 1 else None
    if entry_id is None:
        await update.message.reply_text("Usage: /delete <id> (ids are shown by /log)")
        return

    try:
        session = await _get_session(update.effective_user.id, context, _now())
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("/delete error: %s", exc)
        await update.message.reply_text("Couldn't load today's timeline. Please try again.")
        return

    response = await session.delete_chat(entry_id)
    await update.message.reply_text(_format_response(response))


# ---------------------------------------------------------------------------
# Message handlers
# ---------------------------------------------------------------------------


@authorized_only
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text — a chat line, `#name` or `##name`."""
    now = _now()
    try:
        session = await _get_session(update.effective_user.id, context, now)
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("Timeline load error: %s", exc)
        await update.message.reply_text("Couldn't reach the timeline server. Please try again.")
        return

    response = await session.submit(update.message.text, now)
    text = _format_response(response)
    if text:
        await update.message.reply_text(text)


@authorized_only
async def handle_inline_query(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle inline queries — complete the `#name` / `##name` being typed.

    Picking a result sends the completed line, which handle_text then
    treats like any typed message.
    """
    query = update.inline_query.query
    try:
        session = await _get_session(update.effective_user.id, context, _now())
    except (TimelineError, InvalidTimestampError) as exc:
        logger.error("Inline query error: %s", exc)
        return

    results = [
        InlineQueryResultArticle(
            id=str(idx),
            title=category.name,
            description=text,
            input_message_content=InputTextMessageContent(text),
        )
        for idx, (category, text) in enumerate(session.completions(query)[:_MAX_INLINE_RESULTS])
    ]
    await update.inline_query.answer(results, cache_time=0, is_personal=True)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(timeline: TimelinePort | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        timeline: Timeline port implementation. Defaults to HttpTimelineAdapter.
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if timeline is None:
        from src.adapters.http_timeline import HttpTimelineAdapter
        timeline = HttpTimelineAdapter()

    # Store the port and per-user sessions in bot_data for handler access
    app.bot_data["timeline"] = timeline
    app.bot_data["sessions"] = {}

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("today", cmd_today))
    app.add_handler(CommandHandler("day", cmd_day))
    app.add_handler(CommandHandler("categories", cmd_categories))
    app.add_handler(CommandHandler("addcategory", cmd_addcategory))
    app.add_handler(CommandHandler("switch", cmd_switch))
    app.add_handler(CommandHandler("log", cmd_log))
    app.add_handler(CommandHandler("edit", cmd_edit))
    app.add_handler(CommandHandler("delete", cmd_delete))

    # Hashtag completion (requires inline mode enabled in BotFather)
    app.add_handler(InlineQueryHandler(handle_inline_query))

    # Text messages (non-command)
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Cogno timeline bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
