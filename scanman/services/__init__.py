"""Scanman services.

- issuer: issue, look up, revoke and expire codes
- validator: run the scan gates over scanned content
- rotation: replace codes with fresh successors
- handlers: per-type scan effects
- dispatcher: the rate-limited, transactional scan pipeline
"""

from scanman.services import issuer
from scanman.services import validator
from scanman.services import rotation
from scanman.services import handlers
from scanman.services import dispatcher

__all__ = ["issuer", "validator", "rotation", "handlers", "dispatcher"]
