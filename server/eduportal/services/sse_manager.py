"""
SSE (Server-Sent Events) manager for teacher dashboards.

Each exam has its own channel; submissions, grades and clears for that exam
are published to every dashboard listening on it.
"""
import asyncio
from typing import Dict, List


class SSEConnectionManager:
    """Fan-out of exam events to connected dashboards."""

    def __init__(self):
        # exam_id -> one queue per connected dashboard
        self.channels: Dict[str, List[asyncio.Queue]] = {}

    async def subscribe(self, exam_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self.channels.setdefault(exam_id, []).append(queue)
        return queue

    def unsubscribe(self, exam_id: str, queue: asyncio.Queue) -> None:
        queues = self.channels.get(exam_id)
        if not queues:
            return
        if queue in queues:
            queues.remove(queue)
        if not queues:
            del self.channels[exam_id]

    def subscriber_count(self, exam_id: str) -> int:
        return len(self.channels.get(exam_id, []))

    async def publish(self, exam_id: str, event_type: str, data: dict) -> None:
        """Deliver {"type": event_type, "data": data} to every dashboard on the exam."""
        message = {"type": event_type, "data": data}
        for queue in self.channels.get(exam_id, []):
            await queue.put(message)


# Global manager instance
sse_manager = SSEConnectionManager()
