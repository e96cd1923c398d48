"""hostsmod package"""

from .errors import (
    HostsFileIOError,
    HostsmodError,
    InvariantViolation,
    OperationConflict,
    ParseError,
    PolicyViolation,
    StaleTempFile,
)
from .operations import AddMapping, RemoveMapping, parse_operations
from .pipeline import CommitResult, run
from .policy import PolicyConfig

__version__ = "0.4.0"
