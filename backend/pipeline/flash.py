from starlette.requests import Request

from models.session import Session
from pipeline.base import Forward, Outcome, Stage


class Flash:
    """One-shot messages kept in the session until they are read."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, category: str, message: str) -> int:
        queue = self.session.flash.setdefault(category, [])
        queue.append(message)
        return len(queue)

    def pop(self, category: str) -> list[str]:
        return self.session.flash.pop(category, [])

    def consume(self) -> dict[str, list[str]]:
        messages = dict(self.session.flash)
        self.session.flash.clear()
        return messages

    def __len__(self) -> int:
        return sum(len(queue) for queue in self.session.flash.values())


class FlashStage(Stage):
    name = "flash"

    async def handle(self, request: Request) -> Outcome:
        session = getattr(request.state, "session", None)
        if session is None:
            return Forward(RuntimeError("flash messages require a session"))
        request.state.flash = Flash(session)
        return Forward()
