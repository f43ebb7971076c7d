"""邮件发送适配器：预警邮件是尽力而为的旁路，失败不影响预警记录"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class EmailDisabledError(Exception):
    pass


class EmailSender(ABC):

    @abstractmethod
    async def send(
        self, to_address: str, subject: str, html_body: str, text_body: str
    ) -> str:
        """发送邮件，返回 message id"""
        ...


class DisabledEmailSender(EmailSender):
    """默认实现：邮件服务停用，只记录日志"""

    async def send(
        self, to_address: str, subject: str, html_body: str, text_body: str
    ) -> str:
        logger.info(f"[预算预警] 邮件服务已停用，跳过发送: {subject}")
        raise EmailDisabledError("Email service is currently disabled")
