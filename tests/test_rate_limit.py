from scootcare import rate_limit


def test_window_limits_each_user(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(rate_limit, "time", lambda: clock[0])
    monkeypatch.setattr(rate_limit, "MAX_REQ", 2)
    assert rate_limit.allow("user-alex")
    assert rate_limit.allow("user-alex")
    assert not rate_limit.allow("user-alex")
    assert rate_limit.allow("user-sam")
    clock[0] += rate_limit.WINDOW + 1
    assert rate_limit.allow("user-alex")


def test_idle_users_are_forgotten(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(rate_limit, "time", lambda: clock[0])
    for i in range(50):
        rate_limit.allow(f"user-{i}")
    assert len(rate_limit.buckets) == 50
    clock[0] += rate_limit.WINDOW + 1
    rate_limit.allow("user-alex")
    assert list(rate_limit.buckets) == ["user-alex"]
