# tests/test_permissions.py

"""
Tests for the permission tree: defaults, merging, lookups and editing.
"""

from core.permissions import (
    ALL_PERMISSION_PATHS,
    PERMISSION_CATALOG,
    TEAM_LEADER_GRANTS,
    bulk_set_permissions,
    default_permissions,
    effective_permissions,
    flatten_permissions,
    get_permission,
    is_known_path,
    merge_permissions,
    parse_permissions,
    search_catalog,
    set_permission,
)


def test_admin_defaults_grant_every_leaf():
    flat = flatten_permissions(default_permissions("admin"))
    assert set(flat) == set(ALL_PERMISSION_PATHS)
    assert all(flat.values())


def test_team_leader_defaults_grant_only_listed_leaves():
    flat = flatten_permissions(default_permissions("teamLeader"))
    granted = {path for path, value in flat.items() if value}
    assert granted == set(TEAM_LEADER_GRANTS)
    assert flat["users.managePermissions"] is False


def test_unknown_role_gets_nothing():
    flat = flatten_permissions(default_permissions("guest"))
    assert not any(flat.values())


def test_missing_path_is_denied():
    tree = default_permissions("admin")
    assert get_permission(tree, "riders.view") is True
    assert get_permission(tree, "riders.doesNotExist") is False
    assert get_permission(tree, "nothing.here.at.all") is False
    assert get_permission(None, "riders.view") is False


def test_subtree_is_not_a_grant():
    tree = default_permissions("admin")
    assert get_permission(tree, "riders.bulkActions") is False


def test_merge_keeps_stored_booleans_and_fills_missing_keys():
    stored = {"riders": {"view": False}, "wallet": {"addFunds": True}}
    merged = merge_permissions(stored, default_permissions("teamLeader"))

    assert merged["riders"]["view"] is False
    assert merged["wallet"]["addFunds"] is True
    # keys absent from the stored tree come from the defaults
    assert merged["leads"]["create"] is True
    assert merged["dashboard"]["statsCards"]["revenue"] is False


def test_merge_ignores_non_boolean_leaves_and_keeps_subtrees():
    stored = {"riders": "yes", "leads": {"view": "true"}, "custom": {"flag": True}}
    merged = merge_permissions(stored, default_permissions("teamLeader"))

    assert isinstance(merged["riders"], dict)
    assert merged["riders"]["view"] is True
    assert merged["leads"]["view"] is True
    assert merged["custom"] == {"flag": True}


def test_parse_permissions_accepts_json_strings():
    assert parse_permissions('{"riders": {"view": true}}') == {"riders": {"view": True}}
    assert parse_permissions("not json") == {}
    assert parse_permissions(None) == {}
    assert parse_permissions("[1, 2]") == {}


def test_effective_permissions_for_partial_legacy_record():
    tree = effective_permissions("teamLeader", '{"riders": {"create": true}}')
    assert get_permission(tree, "riders.create") is True
    assert get_permission(tree, "riders.view") is True
    assert get_permission(tree, "riders.hardDelete") is False


def test_set_permission_creates_parents_without_mutating_input():
    original = {}
    updated = set_permission(original, "riders.bulkActions.delete", True)
    assert original == {}
    assert updated == {"riders": {"bulkActions": {"delete": True}}}


def test_bulk_set_permissions():
    tree = bulk_set_permissions(default_permissions("teamLeader"), ["wallet.addFunds", "wallet.deductFunds"], True)
    assert tree["wallet"]["addFunds"] is True
    assert tree["wallet"]["deductFunds"] is True


def test_is_known_path():
    assert is_known_path("dashboard.statsCards.leaderboard")
    assert not is_known_path("dashboard.statsCards")
    assert not is_known_path("billing.view")


def test_catalog_paths_are_real_leaves():
    for tab in PERMISSION_CATALOG:
        for perm in tab["permissions"]:
            assert is_known_path(perm["path"]), perm["path"]


def test_search_catalog_filters_by_label_and_description():
    results = search_catalog("wallet", "deduct")
    assert [p["path"] for p in results] == ["wallet.deductFunds"]
    assert len(search_catalog("wallet")) == 5
    assert search_catalog("missing-tab", "x") == []
