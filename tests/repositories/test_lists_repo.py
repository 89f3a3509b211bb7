from __future__ import annotations

import pytest

from mml_backend.repositories import lists as lists_repo


def test_create_list_trims_and_blanks_description(fake_db) -> None:  # noqa: ANN001
    fake_db.queue([{"id": 7, "title": "Favorites", "description": None, "updated_at": "t", "user_identifier": "u"}])

    row = lists_repo.create_list(fake_db, "user-1", "  Favorites ", "   ")

    (payload,) = fake_db.queries[0].args_of("insert")[0]
    assert payload == {"user_identifier": "user-1", "title": "Favorites", "description": None}
    assert row == {"id": 7, "title": "Favorites", "description": None, "updated_at": "t"}


def test_create_list_requires_title(fake_db) -> None:  # noqa: ANN001
    with pytest.raises(ValueError, match="List title is required."):
        lists_repo.create_list(fake_db, "user-1", "   ")
    assert fake_db.queries == []


def test_get_owned_list_scopes_to_user(fake_db) -> None:  # noqa: ANN001
    assert lists_repo.get_owned_list(fake_db, 7, "user-1") is None

    assert fake_db.queries[0].args_of("eq") == [("id", "7"), ("user_identifier", "user-1")]


def test_update_list_only_sends_provided_fields(fake_db) -> None:  # noqa: ANN001
    fake_db.queue([{"id": 7, "title": "Renamed", "description": "d", "updated_at": "t"}])

    row = lists_repo.update_list(fake_db, "7", "user-1", {"title": " Renamed "})

    (update,) = fake_db.queries[0].args_of("update")[0]
    assert update == {"title": "Renamed"}
    assert row["title"] == "Renamed"


def test_update_list_rejects_blank_title(fake_db) -> None:  # noqa: ANN001
    with pytest.raises(ValueError):
        lists_repo.update_list(fake_db, "7", "user-1", {"title": ""})


def test_empty_update_returns_current_row(fake_db) -> None:  # noqa: ANN001
    fake_db.queue([{"id": 7, "title": "Same"}])

    row = lists_repo.update_list(fake_db, "7", "user-1", {})

    assert row == {"id": 7, "title": "Same"}
    assert fake_db.queries[0].has_call("select")


def test_delete_list_reports_whether_a_row_went_away(fake_db) -> None:  # noqa: ANN001
    fake_db.queue([{"id": 7}]).queue([])

    assert lists_repo.delete_list(fake_db, "7", "user-1") is True
    assert lists_repo.delete_list(fake_db, "7", "user-1") is False


def test_list_items_newest_first(fake_db) -> None:  # noqa: ANN001
    fake_db.queue(
        [
            {
                "created_at": "2024-05-02",
                "media_items": {
                    "id": "m1",
                    "title": "Dune",
                    "type": "movie",
                    "source": "tmdb",
                    "source_id": "438631",
                },
            },
            {"created_at": "2024-05-01", "media_items": []},
        ]
    )

    items = lists_repo.list_list_items(fake_db, "7")

    assert fake_db.queries[0].table == "list_items"
    assert fake_db.queries[0].kwargs_of("order") == [{"desc": True}]
    assert items == [
        {
            "created_at": "2024-05-02",
            "media": {
                "id": "m1",
                "title": "Dune",
                "poster_url": None,
                "description": None,
                "type": "movie",
                "provider": "tmdb",
                "provider_id": "438631",
            },
        }
    ]


def test_add_and_remove_list_item(fake_db) -> None:  # noqa: ANN001
    lists_repo.add_list_item(fake_db, 7, "m1")
    lists_repo.remove_list_item(fake_db, 7, "m1")

    add, remove = fake_db.queries
    assert add.args_of("insert") == [({"list_id": "7", "media_id": "m1"},)]
    assert remove.has_call("delete")
    assert remove.args_of("eq") == [("list_id", "7"), ("media_id", "m1")]
