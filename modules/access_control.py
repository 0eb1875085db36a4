#modules/access_control.py
import logging
from abc import ABC, abstractmethod

from telegram import Bot
from telegram.constants import ChatMemberStatus
from telegram.error import TelegramError

logger = logging.getLogger(__name__)

ADMIN_STATUSES = {ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.OWNER}


class AccessControl(ABC):
    """Проверка прав на запуск и остановку викторин"""

    @abstractmethod
    async def is_admin(self, chat_id: int, user_id: int) -> bool:
        ...


class TelegramAccessControl(AccessControl):
    """Администратор чата по данным get_chat_member. В личном чате пользователь всегда админ"""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def is_admin(self, chat_id: int, user_id: int) -> bool:
        # В личке chat_id совпадает с user_id
        if chat_id == user_id:
            return True
        try:
            chat_member = await self.bot.get_chat_member(chat_id, user_id)
        except TelegramError as e:
            logger.error(f"Ошибка при проверке статуса админа для пользователя {user_id} в чате {chat_id}: {e}")
            return False
        is_admin = chat_member.status in ADMIN_STATUSES
        logger.debug(f"Пользователь {user_id} в чате {chat_id}: статус={chat_member.status}, админ={is_admin}")
        return is_admin
