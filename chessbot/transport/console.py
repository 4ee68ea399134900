"""
Line-based transport for playing locally.

Every input line is `<user id> <text>`, e.g. `1 /start`, `2 /start`, `1 e4`.
Notifications are printed as `[to <user id>] <text>`.

    python -m chessbot.transport.console < moves.txt
"""

import logging
import sys
from typing import Iterable, Iterator, TextIO

from chessbot.core.config import get_settings
from chessbot.core.models import UserId
from chessbot.db.database import engine_from_settings, init_db, make_session_factory
from chessbot.db.sql_repository import SQLGameStore
from chessbot.services.session_engine import SessionEngine
from chessbot.transport.dispatcher import Dispatcher
from chessbot.transport.models import InboundMessage

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    def __init__(self, out: TextIO = sys.stdout) -> None:
        self.out = out

    def notify(self, user_id: UserId, text: str) -> None:
        print(f"[to {user_id}] {text}", file=self.out, flush=True)


def parse_lines(lines: Iterable[str]) -> Iterator[InboundMessage]:
    for number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        user, _, text = line.partition(" ")
        try:
            yield InboundMessage(user_id=int(user), display_name=f"user {user}", text=text)
        except ValueError as exc:
            logger.warning("skipping line %s (%r): %s", number, line, exc)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("startup")

    engine = engine_from_settings(settings)
    init_db(engine)
    store = SQLGameStore(make_session_factory(engine))
    session_engine = SessionEngine(store, ConsoleNotifier(), settings=settings)

    logger.info("waiting for messages")
    for _ in Dispatcher(session_engine, workers=settings.workers).run(parse_lines(sys.stdin)):
        pass
    logger.info("exiting")


if __name__ == "__main__":
    main()
