"""
Bus topic layout and the device wire contract.

    lab/<LabId>/ring     server -> device, payload 'ms=<duration>'
    lab/<LabId>/alive    device -> server heartbeat
    lab/<LabId>/status   device -> server heartbeat (retained, payload 'online')
"""

import re
from typing import Optional

RING_TOPIC = 'lab/{labId}/ring'
STATUS_TOPIC = 'lab/{labId}/status'
PRESENCE_PATTERNS = ('lab/+/alive', 'lab/+/status')

RING_DURATION_MS = 3000
RING_PAYLOAD = f'ms={RING_DURATION_MS}'
MAX_RING_DURATION_MS = 10000

HEARTBEAT_INTERVAL_SECONDS = 10
HEARTBEAT_PAYLOAD = 'online'

_presenceTopic = re.compile(r'^lab/([^/]+)/(alive|status)$')


def ringTopic(labId: str) -> str:
    return RING_TOPIC.format(labId=labId)


def statusTopic(labId: str) -> str:
    return STATUS_TOPIC.format(labId=labId)


def parsePresenceTopic(topic: str) -> Optional[str]:
    """Raw lab segment of a heartbeat topic, or None if the topic is not one"""
    match = _presenceTopic.match(topic or '')
    return match.group(1) if match else None


def parseRingDuration(payload) -> int:
    """
    Device-side reading of a ring payload.

    Accepts 'ms=<n>' or a bare '<n>' with 1 <= n <= 10000; anything else
    yields the default duration.
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode('utf-8', errors='replace')
    text = str(payload or '').strip()

    if text.startswith('ms='):
        text = text[3:]

    if text.isascii() and text.isdigit():
        value = int(text)
        if 0 < value <= MAX_RING_DURATION_MS:
            return value

    return RING_DURATION_MS
