import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ItemTimer:
    """
    선수별 카운트다운 (asyncio 태스크 1개)
    - restart(): 기존 카운트다운 취소 후 새로 시작 (입찰 수락/라운드 전환 시)
    - 만료 시 on_expire()를 동기 호출 → 운영자가 낙찰/유찰을 누른 것과 동일
    """

    def __init__(
        self,
        duration: int,
        on_expire: Callable[[], Any],
        on_tick: Optional[Callable[[int], Any]] = None,
        tick_seconds: float = 1.0,
    ):
        self.duration = duration
        self.on_expire = on_expire
        self.on_tick = on_tick
        self.tick_seconds = tick_seconds
        self.remaining = duration
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def restart(self, duration: Optional[int] = None):
        self.cancel()
        self.remaining = self.duration if duration is None else duration
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self):
        while self.remaining > 0:
            await asyncio.sleep(self.tick_seconds)
            self.remaining -= 1
            if self.on_tick:
                self.on_tick(self.remaining)

        # 만료 콜백 안에서 restart()가 다시 불릴 수 있으므로 먼저 분리
        self._task = None
        logger.debug("item timer expired")
        self.on_expire()
