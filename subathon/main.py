import asyncio
import logging

from shared.database import DatabaseManager
from shared.migrations import MigrationRunner
from shared.repositories import TimerStateRepository, TokenRepository
from subathon.core.bot import Bot
from subathon.core.config import SubathonSettings, get_settings
from subathon.core.control_server import ControlServer
from subathon.core.logging import setup_logging
from subathon.core.persistence import JsonFileTimerStateStore, TimerStateStore
from subathon.core.runtime import SubathonRuntime
from subathon.core.sinks import FileRenderSink, LogRenderSink, RenderSink

LOGGER: logging.Logger = logging.getLogger("Subathon")


async def run(settings: SubathonSettings) -> None:
    db: DatabaseManager | None = None
    tokens: TokenRepository | None = None
    store: TimerStateStore

    if settings.database_url:
        db = DatabaseManager(settings.database_url)
        await db.connect()
        await MigrationRunner(db.pool).run_pending()
        store = TimerStateRepository(db.pool)
        tokens = TokenRepository(db.pool)
    else:
        LOGGER.info(f"No DATABASE_URL set, storing timer state in {settings.state_file}")
        store = JsonFileTimerStateStore(settings.state_file)

    sinks: list[RenderSink] = [LogRenderSink()]
    if settings.timer_file:
        sinks.append(FileRenderSink(settings.timer_file, settings.feedback_file))

    runtime = SubathonRuntime(
        store,
        sinks=sinks,
        render_fps=settings.render_fps,
        persist_interval=settings.persist_interval_seconds,
        persist_debounce=settings.persist_debounce_seconds,
    )
    control = ControlServer(runtime, host=settings.control_host, port=settings.control_port)
    await control.start()

    try:
        await runtime.bootstrap(
            settings.load_timer_config(), grace_seconds=settings.load_grace_seconds
        )

        if not settings.bot_enabled:
            LOGGER.info("Twitch credentials not configured, running with control server only")
            await asyncio.Event().wait()
            return

        if not settings.broadcaster_id:
            LOGGER.warning("BROADCASTER_ID not set, no channel events will be received")

        urls = settings.authorization_urls()
        LOGGER.info(f"Bot account authorization: {urls['bot']}")
        LOGGER.info(f"Broadcaster authorization: {urls['broadcaster']}")

        async with Bot(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            bot_id=settings.bot_id,
            owner_id=settings.owner_id,
            broadcaster_id=settings.broadcaster_id,
            conduit_id=settings.conduit_id or None,
            runtime=runtime,
            tokens=tokens,
            reply_in_chat=settings.reply_in_chat,
        ) as bot:
            await bot.start()
    finally:
        await runtime.stop()
        await control.stop()
        if db is not None:
            await db.disconnect()


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        LOGGER.warning("Shutting down due to KeyboardInterrupt...")


if __name__ == "__main__":
    main()
