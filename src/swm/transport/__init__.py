"""Transport plumbing: the injected send function and an in-memory host."""

from .base import Port, SendFunction
from .memory import Loopback
