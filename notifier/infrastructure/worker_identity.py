"""
Worker identity used as the claim owner.
"""

import os
import socket
from typing import Optional


def build_worker_id(hostname: Optional[str] = None, pid: Optional[int] = None) -> str:
    """
    Build the owner token for this process.
    
    Computed once at startup and passed to every component that claims or
    finalizes records. Format: ``hostname:pid``.
    """
    hostname = hostname or socket.gethostname()
    pid = pid if pid is not None else os.getpid()
    return f"{hostname}:{pid}"
