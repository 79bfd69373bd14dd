from crypto_clarity.services.admins import AdminAllowList


def test_allow_list_normalizes_and_dedupes() -> None:
    allow_list = AdminAllowList([" Admin@Example.com ", "admin@example.com", ""])

    assert allow_list.snapshot() == ["admin@example.com"]
    assert allow_list.contains("ADMIN@example.com")
    assert not allow_list.contains(None)


def test_add_reports_whether_email_was_new() -> None:
    allow_list = AdminAllowList()

    assert allow_list.add("New@Example.com") is True
    assert allow_list.add("new@example.com") is False
    assert len(allow_list) == 1


def test_snapshot_is_a_copy() -> None:
    allow_list = AdminAllowList(["a@example.com"])
    snapshot = allow_list.snapshot()
    snapshot.append("b@example.com")

    assert allow_list.snapshot() == ["a@example.com"]


def test_replace_swaps_the_whole_list() -> None:
    allow_list = AdminAllowList(["a@example.com"])
    allow_list.replace(["b@example.com", "B@example.com"])

    assert allow_list.snapshot() == ["b@example.com"]
