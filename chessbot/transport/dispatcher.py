"""
Feed inbound messages to the session engine.

With one worker, messages are handled strictly in arrival order. With more, each user is pinned to one worker
(a lane), so a user's own messages keep their order while different users are served concurrently.
"""

import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Iterator

from chessbot.services.session_engine import SessionEngine
from chessbot.transport.models import InboundMessage

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, engine: SessionEngine, workers: int = 1) -> None:
        if workers < 1:
            raise ValueError(f"Need at least one worker, got {workers}.")
        self.engine = engine
        self.workers = workers

    def dispatch(self, message: InboundMessage):
        """Handle one message. A failure is logged and does not stop the stream."""
        try:
            return self.engine.handle(message)
        except Exception as exc:
            logger.error("error while handling message of user %s: %s", message.user_id, exc, exc_info=exc)
            return exc

    def run(self, messages: Iterable[InboundMessage]) -> Iterator:
        """
        Handle the messages and yield the results in input order, as soon as each one is ready.

        At most two messages per worker are read ahead of the result that is being waited for.
        """
        if self.workers == 1:
            for message in messages:
                yield self.dispatch(message)
            return

        window = self.workers * 2
        lanes = [ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"lane-{n}") for n in range(self.workers)]
        in_flight: deque[Future] = deque()
        try:
            for message in messages:
                in_flight.append(lanes[message.user_id % self.workers].submit(self.dispatch, message))
                if len(in_flight) > window:
                    yield in_flight.popleft().result()
            while in_flight:
                yield in_flight.popleft().result()
        finally:
            for lane in lanes:
                lane.shutdown(wait=True)
