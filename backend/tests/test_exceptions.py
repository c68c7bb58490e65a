from eduplan.core.exceptions import AppError, ResourceNotFoundError, SchedulerError, ScopeResolutionError


def test_scheduler_error_structure():
    err = SchedulerError(message="Test error", details={"foo": "bar"})
    assert err.status_code == 400
    assert err.message == "Test error"
    assert err.details == {"foo": "bar"}
    assert isinstance(err, AppError)


def test_app_error_defaults():
    err = AppError("Generic error")
    assert err.status_code == 500
    assert err.details == {}


def test_scope_resolution_error_is_a_scheduler_error():
    err = ScopeResolutionError("major", "Division table missing")
    assert isinstance(err, SchedulerError)
    assert err.status_code == 400
    assert err.details == {"scope": "major"}


def test_not_found_error():
    missing = ResourceNotFoundError("Generation job", "abc")
    assert missing.status_code == 404
    assert str(missing) == "Generation job with id abc not found"
