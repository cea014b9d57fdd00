from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from pocket_backend.repositories.prompt_tag_repository import PromptTagRepository
from pocket_backend.repositories.tag_repository import TagRepository


TAGS = "/api/v1/tags"
LINKS = "/api/v1/prompt-tags"


def _tag(client: TestClient, headers: dict[str, str], name: str) -> dict:
    resp = client.post(TAGS, json={"name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _prompt(client: TestClient, headers: dict[str, str], name: str = "Plain") -> dict:
    resp = client.post("/api/v1/prompts", json={"name": name, "content": "plain text"}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_and_list_tags(client: TestClient, auth_headers: dict[str, str]) -> None:
    created = _tag(client, auth_headers, "  work  ")
    assert created["name"] == "work"
    assert created["prompt_count"] == 0
    _tag(client, auth_headers, "alpha")

    resp = client.get(TAGS, headers=auth_headers)

    assert resp.status_code == 200
    assert [t["name"] for t in resp.json()["data"]] == ["alpha", "work"]


def test_duplicate_tag_name_conflicts(client: TestClient, auth_headers: dict[str, str]) -> None:
    _tag(client, auth_headers, "Work")
    assert client.post(TAGS, json={"name": "work"}, headers=auth_headers).status_code == 409


def test_blank_tag_name_is_rejected(client: TestClient, auth_headers: dict[str, str]) -> None:
    resp = client.post(TAGS, json={"name": "   "}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request data"


def test_rename_tag(client: TestClient, auth_headers: dict[str, str], other_auth_headers: dict[str, str]) -> None:
    tag = _tag(client, auth_headers, "old")
    _tag(client, auth_headers, "taken")

    resp = client.patch(f"{TAGS}/{tag['id']}", json={"name": "new"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "new"

    assert client.patch(f"{TAGS}/{tag['id']}", json={"name": "Taken"}, headers=auth_headers).status_code == 409
    assert client.patch(f"{TAGS}/{tag['id']}", json={"name": "x"}, headers=other_auth_headers).status_code == 404
    assert client.patch(f"{TAGS}/{uuid.uuid4()}", json={"name": "x"}, headers=auth_headers).status_code == 404


def test_assign_and_remove_tag(client: TestClient, auth_headers: dict[str, str]) -> None:
    tag = _tag(client, auth_headers, "work")
    prompt = _prompt(client, auth_headers)
    link = {"prompt_id": prompt["id"], "tag_id": tag["id"]}

    resp = client.post(LINKS, json=link, headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json() == {
        "prompt_id": prompt["id"],
        "tag_id": tag["id"],
        "prompt_name": "Plain",
        "tag_name": "work",
    }
    assert client.post(LINKS, json=link, headers=auth_headers).status_code == 409

    tags = client.get(TAGS, headers=auth_headers).json()["data"]
    assert tags[0]["prompt_count"] == 1
    fetched = client.get(f"/api/v1/prompts/{prompt['id']}", headers=auth_headers).json()
    assert [t["name"] for t in fetched["tags"]] == ["work"]

    assert client.request("DELETE", LINKS, json=link, headers=auth_headers).status_code == 204
    assert client.request("DELETE", LINKS, json=link, headers=auth_headers).status_code == 404


def test_cross_owner_association_is_forbidden(
    client: TestClient,
    auth_headers: dict[str, str],
    other_auth_headers: dict[str, str],
) -> None:
    mine = _prompt(client, auth_headers)
    theirs = _tag(client, other_auth_headers, "theirs")

    resp = client.post(LINKS, json={"prompt_id": mine["id"], "tag_id": theirs["id"]}, headers=auth_headers)
    assert resp.status_code == 403

    resp = client.post(LINKS, json={"prompt_id": mine["id"], "tag_id": theirs["id"]}, headers=other_auth_headers)
    assert resp.status_code == 404


def test_deleting_prompt_updates_tag_counts(client: TestClient, auth_headers: dict[str, str]) -> None:
    tag = _tag(client, auth_headers, "work")
    prompt = _prompt(client, auth_headers)
    client.post(LINKS, json={"prompt_id": prompt["id"], "tag_id": tag["id"]}, headers=auth_headers)

    assert client.delete(f"/api/v1/prompts/{prompt['id']}", headers=auth_headers).status_code == 204

    tags = client.get(TAGS, headers=auth_headers).json()["data"]
    assert tags == [{"id": tag["id"], "name": "work", "created_at": tags[0]["created_at"], "prompt_count": 0}]


def test_rename_reports_prompt_count(client: TestClient, auth_headers: dict[str, str]) -> None:
    tag = _tag(client, auth_headers, "work")
    prompt = _prompt(client, auth_headers)
    client.post(LINKS, json={"prompt_id": prompt["id"], "tag_id": tag["id"]}, headers=auth_headers)

    resp = client.patch(f"{TAGS}/{tag['id']}", json={"name": "office"}, headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["prompt_count"] == 1


def test_conflicts_at_insert_time_are_reported(
    client: TestClient,
    auth_headers: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    tag = _tag(client, auth_headers, "work")
    other = _tag(client, auth_headers, "home")
    prompt = _prompt(client, auth_headers)
    link = {"prompt_id": prompt["id"], "tag_id": tag["id"]}
    assert client.post(LINKS, json=link, headers=auth_headers).status_code == 201

    # Concurrent writers slip past the pre-checks; the constraints still hold
    monkeypatch.setattr(TagRepository, "name_exists", lambda self, **kwargs: False)
    monkeypatch.setattr(PromptTagRepository, "get", lambda self, prompt_id, tag_id: None)

    resp = client.post(TAGS, json={"name": "work"}, headers=auth_headers)
    assert resp.status_code == 409
    assert resp.json() == {"error": "Tag 'work' already exists"}

    assert client.patch(f"{TAGS}/{other['id']}", json={"name": "work"}, headers=auth_headers).status_code == 409
    assert client.post(LINKS, json=link, headers=auth_headers).status_code == 409

    monkeypatch.undo()
    names = [t["name"] for t in client.get(TAGS, headers=auth_headers).json()["data"]]
    assert names == ["home", "work"]
