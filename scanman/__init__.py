"""
Django Scanman - QR code trust and scan processing.

Usage:
    from scanman import CodeService
    from scanman.gates import Gates, GateResult

    code = CodeService.issue(42, "CUSTOMER_CARD", {"customer_id": 42}, is_primary=True)
    validation = CodeService.validate("CUSTOMER_CARD", code.qr_content())
    outcome = CodeService.scan("CUSTOMER_CARD", 7, code.qr_content(), source_address="10.0.0.1")

    # Gates validation
    Gates.code_status(code)
    Gates.code_signature(code, scanned_signature)
"""


def __getattr__(name):
    if name == "CodeService":
        from scanman.service import CodeService

        return CodeService
    if name == "Gates":
        from scanman.gates import Gates

        return Gates
    if name == "GateResult":
        from scanman.gates import GateResult

        return GateResult
    if name == "ScanmanError":
        from scanman.exceptions import ScanmanError

        return ScanmanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["CodeService", "Gates", "GateResult", "ScanmanError"]
__version__ = "0.1.0"
