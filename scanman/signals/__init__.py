"""
Scanman signals - public event API.

All signals are sent after the surrounding transaction commits.

Emitted signals:
- code_issued: Emitted by services.issuer.issue()
- code_rotated: Emitted by services.rotation.rotate()
- code_revoked: Emitted by services.issuer.revoke()
- scan_completed: Emitted by services.dispatcher.dispatch() for every attempt
"""

from django.dispatch import Signal

# Code lifecycle
code_issued = Signal()  # sender=QRCode, code=QRCode
code_rotated = Signal()  # sender=QRCode, previous=QRCode, code=QRCode
code_revoked = Signal()  # sender=QRCode, code=QRCode, reason=str

# Scans (sent with send_robust; receivers cannot break a scan)
scan_completed = Signal()  # sender=Scan, scan=Scan | None, outcome=ScanOutcome
