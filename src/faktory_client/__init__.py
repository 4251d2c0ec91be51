"""Client for the Faktory background job server."""

from faktory_client.client import FaktoryClient as FaktoryClient
from faktory_client.client import WorkerState as WorkerState
from faktory_client.errors import AuthenticationError as AuthenticationError
from faktory_client.errors import FaktoryError as FaktoryError
from faktory_client.errors import ProtocolError as ProtocolError
from faktory_client.errors import ServerError as ServerError
from faktory_client.errors import TransportError as TransportError
from faktory_client.errors import TransportTimeoutError as TransportTimeoutError
from faktory_client.job import Job as Job
