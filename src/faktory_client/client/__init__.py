"""Client subsystem: connection guard, heartbeat, and the command API."""

from faktory_client.client.client import FaktoryClient as FaktoryClient
from faktory_client.client.heartbeat import WorkerState as WorkerState
