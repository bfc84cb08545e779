"""Notes API 의 생성/조회/수정/되돌리기/삭제 시나리오를 검증하는 자동화 테스트입니다."""

from app.models.note import Note, NoteVersion
from tests.conftest import auth_headers, create_note


def test_create_then_read_round_trip(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    created = create_note(client, headers, title="A", content="B")
    assert created["version"] == 1

    resp = client.get(f"/api/notes/{created['id']}", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["version"] == 1
    assert len(data["versions"]) == 1
    assert data["versions"][0]["version"] == 1
    assert data["versions"][0]["title"] == "A"
    assert data["versions"][0]["content"] == "B"
    assert data["attachments"] == []


def test_create_requires_title_and_content(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    resp = client.post("/api/notes", json={"title": "only title"}, headers=headers)
    assert resp.status_code == 422


def test_list_notes_only_own(client, seed_users):
    alice = auth_headers(client, "alice@example.com")
    bob = auth_headers(client, "bob@example.com")
    create_note(client, alice, title="alice-1")
    create_note(client, alice, title="alice-2")
    create_note(client, bob, title="bob-1")

    resp = client.get("/api/notes", headers=alice)
    assert resp.status_code == 200
    titles = sorted(n["title"] for n in resp.json())
    assert titles == ["alice-1", "alice-2"]


def test_get_note_of_other_user_is_not_found(client, seed_users):
    alice = auth_headers(client, "alice@example.com")
    bob = auth_headers(client, "bob@example.com")
    note = create_note(client, alice)

    # 캐시 적재 후에도 다른 사용자에게 노출되지 않아야 한다.
    assert client.get(f"/api/notes/{note['id']}", headers=alice).status_code == 200
    assert client.get(f"/api/notes/{note['id']}", headers=bob).status_code == 404


def test_invalid_path_id_returns_400(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    assert client.get("/api/notes/abc", headers=headers).status_code == 400
    assert client.get("/api/notes/0", headers=headers).status_code == 400
    assert client.get("/api/notes/-3", headers=headers).status_code == 400


def test_update_increments_version_and_appends_history(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers, title="v1", content="c1")

    resp = client.put(f"/api/notes/{note['id']}", json={"version": 1, "content": "c2"}, headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["version"] == 2
    assert data["title"] == "v1"
    assert data["content"] == "c2"
    assert [v["version"] for v in data["versions"]] == [2, 1]
    assert data["versions"][0]["title"] == "v1"
    assert data["versions"][1]["content"] == "c1"


def test_update_with_stale_version_conflicts(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers)
    for expected in (1, 2):
        resp = client.put(f"/api/notes/{note['id']}", json={"version": expected, "title": f"t{expected}"}, headers=headers)
        assert resp.status_code == 200

    # 버전 3 상태에서 A 가 먼저 성공하고, 같은 버전 3 을 들고 있던 B 는 충돌한다.
    a = client.put(f"/api/notes/{note['id']}", json={"version": 3, "content": "A"}, headers=headers)
    assert a.status_code == 200
    assert a.json()["version"] == 4

    b = client.put(f"/api/notes/{note['id']}", json={"version": 3, "content": "B"}, headers=headers)
    assert b.status_code == 409
    body = b.json()
    assert body["current_version"] == 4
    assert body["expected_version"] == 3

    current = client.get(f"/api/notes/{note['id']}", headers=headers).json()
    assert current["content"] == "A"
    assert current["version"] == 4


def test_update_missing_note_is_not_found(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    resp = client.put("/api/notes/999", json={"version": 1, "title": "x"}, headers=headers)
    assert resp.status_code == 404


def test_update_with_bad_attachment_ids_rolls_back(client, db, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers, title="keep", content="keep")

    for bad in (["abc"], [9999]):
        resp = client.put(
            f"/api/notes/{note['id']}",
            json={"version": 1, "title": "changed", "attachments_to_delete": bad},
            headers=headers,
        )
        assert resp.status_code == 400

    row = db.query(Note).filter(Note.id == note["id"]).one()
    assert row.version == 1
    assert row.title == "keep"
    assert db.query(NoteVersion).filter(NoteVersion.note_id == note["id"]).count() == 1


def test_revert_creates_new_version_with_old_content(client, db, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers, title="t1", content="c1")
    for expected in range(1, 5):
        resp = client.put(
            f"/api/notes/{note['id']}",
            json={"version": expected, "title": f"t{expected + 1}", "content": f"c{expected + 1}"},
            headers=headers,
        )
        assert resp.status_code == 200

    resp = client.put(
        f"/api/notes/{note['id']}/revert",
        json={"target_version": 2, "current_version": 5},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["version"] == 6
    assert data["title"] == "t2"
    assert data["content"] == "c2"
    assert [v["version"] for v in data["versions"]] == [6, 5, 4, 3, 2, 1]

    v2 = db.query(NoteVersion).filter(NoteVersion.note_id == note["id"], NoteVersion.version == 2).one()
    assert (v2.title, v2.content) == ("t2", "c2")


def test_revert_with_stale_current_version_conflicts(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers)
    client.put(f"/api/notes/{note['id']}", json={"version": 1, "title": "x"}, headers=headers)

    resp = client.put(
        f"/api/notes/{note['id']}/revert",
        json={"target_version": 1, "current_version": 1},
        headers=headers,
    )
    assert resp.status_code == 409
    assert resp.json()["current_version"] == 2


def test_revert_to_missing_version_is_not_found(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers)
    resp = client.put(
        f"/api/notes/{note['id']}/revert",
        json={"target_version": 7, "current_version": 1},
        headers=headers,
    )
    assert resp.status_code == 404


def test_revert_to_current_version_still_mints_new_version(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers, title="same", content="same")
    resp = client.put(
        f"/api/notes/{note['id']}/revert",
        json={"target_version": 1, "current_version": 1},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["version"] == 2
    assert resp.json()["content"] == "same"


def test_delete_is_soft_and_not_idempotent(client, db, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers)

    resp = client.delete(f"/api/notes/{note['id']}", headers=headers)
    assert resp.status_code == 204
    assert client.get(f"/api/notes/{note['id']}", headers=headers).status_code == 404
    assert client.get("/api/notes", headers=headers).json() == []

    again = client.delete(f"/api/notes/{note['id']}", headers=headers)
    assert again.status_code == 404

    row = db.query(Note).filter(Note.id == note["id"]).one()
    assert row.deleted_at is not None
    assert db.query(NoteVersion).filter(NoteVersion.note_id == note["id"]).count() == 1


def test_update_deleted_note_is_not_found(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers)
    client.delete(f"/api/notes/{note['id']}", headers=headers)
    resp = client.put(f"/api/notes/{note['id']}", json={"version": 1, "title": "x"}, headers=headers)
    assert resp.status_code == 404


def test_list_versions(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    note = create_note(client, headers)
    client.put(f"/api/notes/{note['id']}", json={"version": 1, "title": "x"}, headers=headers)

    resp = client.get(f"/api/notes/{note['id']}/versions", headers=headers)
    assert resp.status_code == 200
    assert [v["version"] for v in resp.json()] == [2, 1]


def test_search_notes(client, seed_users):
    alice = auth_headers(client, "alice@example.com")
    bob = auth_headers(client, "bob@example.com")
    create_note(client, alice, title="장보기 목록", content="우유 계란")
    create_note(client, alice, title="회의록", content="분기 계획")
    create_note(client, bob, title="bob 우유", content="우유")

    resp = client.post("/api/notes/search", json={"keywords": "우유"}, headers=alice)
    assert resp.status_code == 200
    assert [n["title"] for n in resp.json()] == ["장보기 목록"]


def test_search_strips_operators_and_requires_keywords(client, seed_users):
    headers = auth_headers(client, "alice@example.com")
    create_note(client, headers, title="plan", content="alpha beta")

    assert client.post("/api/notes/search", json={}, headers=headers).status_code == 400
    resp = client.post("/api/notes/search", json={"keywords": "<alpha*>"}, headers=headers)
    assert resp.status_code == 200
    assert len(resp.json()) == 1
    assert client.post("/api/notes/search", json={"keywords": "<>*~"}, headers=headers).json() == []


def test_notes_require_auth(client):
    resp = client.get("/api/notes")
    assert resp.status_code in (401, 403)
