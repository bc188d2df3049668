from abc import ABC, abstractmethod


class IEmailSender(ABC):
    """Outbound email, invoked fire-and-forget"""

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        pass
