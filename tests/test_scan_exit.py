import pytest

from stigpipe.services.scan_exit import ScanEngineError, ScanOutcome, classify_scan_exit


def test_known_exit_codes_map_to_outcomes() -> None:
    assert classify_scan_exit(0) is ScanOutcome.COMPLIANT
    assert classify_scan_exit(2) is ScanOutcome.RULES_FAILED


@pytest.mark.parametrize("code", [1, 3, 127, -9])
def test_other_exit_codes_are_engine_errors(code: int) -> None:
    with pytest.raises(ScanEngineError) as excinfo:
        classify_scan_exit(code)

    assert excinfo.value.exit_code == code
