#bot.py
import asyncio
import logging
from typing import Optional

from telegram import Update
from telegram.ext import Application, ContextTypes
from telegram.constants import ParseMode
from telegram.error import TelegramError

# Модули приложения
from app_config import AppConfig
from state import QuizSessionStore
from utils import escape_markdown_v2

from modules.access_control import TelegramAccessControl
from modules.bot_commands_setup import setup_bot_commands
from modules.logger_config import setup_logging
from modules.quiz_engine import QuizEngine
from modules.quiz_repository import JsonQuizRepository
from modules.quiz_timer import APSchedulerTimerFacility
from modules.quiz_transport import TelegramQuizTransport

# Обработчики команд и колбэков
from handlers.common_handlers import CommonHandlers
from handlers.quiz_handlers import QuizHandlers

logger = logging.getLogger(__name__)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Исключение при обработке обновления:", exc_info=context.error)
    if isinstance(update, Update) and update.effective_chat:
        error_message_user = escape_markdown_v2(
            "Произошла внутренняя ошибка. Пожалуйста, сообщите администратору, если проблема повторится."
        )
        try:
            await context.bot.send_message(
                chat_id=update.effective_chat.id, text=error_message_user,
                parse_mode=ParseMode.MARKDOWN_V2
            )
        except TelegramError as e_send_err_notify:
            logger.error(f"Не удалось отправить уведомление об ошибке пользователю: {e_send_err_notify}")


def build_application(app_config: AppConfig, timers: APSchedulerTimerFacility) -> Application:
    """Собирает Application и регистрирует обработчики. Хранилище сессий кладётся в bot_data для остановки"""
    application = (
        Application.builder()
        .token(app_config.bot_token)
        .concurrent_updates(True)
        .read_timeout(30)
        .connect_timeout(30)
        .write_timeout(30)
        .pool_timeout(20)
        .build()
    )
    logger.info("Объект Application создан.")

    store = QuizSessionStore()
    repository = JsonQuizRepository(app_config.paths.quizzes_dir)
    engine = QuizEngine(
        store=store,
        timers=timers,
        transport=TelegramQuizTransport(application.bot, leaderboard_display_limit=app_config.leaderboard_display_limit),
        provider=repository,
        access_control=TelegramAccessControl(application.bot),
        config=app_config.engine_config(),
    )

    application.bot_data['quiz_store'] = store

    common_handlers = CommonHandlers(app_config=app_config)
    quiz_handlers = QuizHandlers(app_config=app_config, engine=engine, store=store, repository=repository)
    application.add_handlers(quiz_handlers.get_handlers())
    application.add_handlers(common_handlers.get_handlers())
    application.add_error_handler(error_handler)
    logger.debug("Все обработчики PTB зарегистрированы.")
    return application


async def main() -> None:
    """Точка входа Quiz Battle Bot"""
    application_instance: Optional[Application] = None
    timers: Optional[APSchedulerTimerFacility] = None

    try:
        app_config = AppConfig()
        setup_logging(
            log_level="DEBUG" if app_config.debug_mode else app_config.log_level_str,
            log_dir=str(app_config.paths.logs_dir)
        )
        if not app_config.bot_token:
            logger.critical("Токен бота не найден. Укажите BOT_TOKEN в .env.")
            return

        timers = APSchedulerTimerFacility()
        application_instance = build_application(app_config, timers)

        await setup_bot_commands(application_instance, app_config)
        await application_instance.initialize()
        # AsyncIOScheduler нужен работающий event loop
        timers.start()

        if application_instance.updater:
            logger.info("Запуск бота (polling)...")
            await application_instance.updater.start_polling(allowed_updates=Update.ALL_TYPES)
            await application_instance.start()
            logger.info("Бот запущен и готов принимать обновления.")
            while application_instance.updater.running:
                await asyncio.sleep(1)
            logger.info("Updater остановлен (внутри main).")
        else:
            logger.error("Updater не был создан. Бот не может быть запущен.")

    except (KeyboardInterrupt, SystemExit):
        logger.info("Программа прервана (KeyboardInterrupt/SystemExit в main).")
    finally:
        if timers is not None:
            timers.shutdown()
        if application_instance:
            if application_instance.updater and application_instance.updater.running:
                await application_instance.updater.stop()
            if application_instance.running:
                await application_instance.stop()
            await application_instance.shutdown()
            logger.info("Application остановлен.")
        active = application_instance.bot_data['quiz_store'].active_sessions() if application_instance else []
        if active:
            # Сессии не сохраняются между перезапусками
            logger.warning(f"При остановке прервано викторин: {len(active)}")


def run() -> None:
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Программа прервана (KeyboardInterrupt/SystemExit на уровне run).")
    finally:
        logger.info("Программа завершена.")


if __name__ == "__main__":
    run()
