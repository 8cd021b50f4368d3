"""Shared fixtures: sample chats and a sleep recorder for retry paths."""

import pytest

GOA_CHAT = """\
[12/01/24, 10:00:01] Rahul: Guys Goa trip is on! Dec 15-18 works for me
[12/01/24, 10:01:12] Priya: Dec 15-18 is perfect
[12/01/24, 10:02:40] Amit: Same, Dec 15-18 👍
[12/01/24, 10:03:05] Rahul: Budget around 15k per person?
[12/01/24, 10:04:10] Priya: 15k per person sounds good
[12/01/24, 10:05:00] Amit: ok 15k per person works
[12/01/24, 10:06:30] Priya: We should visit Baga Beach for sure
[12/01/24, 10:07:02] Amit: yes Baga Beach!
[12/01/24, 10:08:45] Rahul: I'll book the villa by tomorrow
[12/01/24, 10:09:10] Priya: image omitted
[12/01/24, 10:10:00] Amit: Should we rent bikes or take cabs?
"""


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def goa_chat():
    return GOA_CHAT
