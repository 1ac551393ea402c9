from frontdesk.announcements import sanitize_html


def _announce(client, **overrides):
    payload = {"title": "Holiday hours", "category": "Event", "content": "<p>Desk closes at 9</p>", "is_published": True}
    payload.update(overrides)
    res = client.post("/api/announcements", json=payload)
    assert res.status_code == 201, res.text
    return res.json()


def test_sanitize_html_keeps_rich_text_subset():
    dirty = (
        '<h2>Hi</h2><p onclick="x()">Text <script>alert(1)</script>'
        '<a href="https://example.com" target="_blank" rel="noopener">link</a>'
        '<a href="javascript:alert(1)">bad</a><img src="x.png"></p>'
    )
    clean = sanitize_html(dirty)
    assert "<h2>Hi</h2>" in clean
    assert "onclick" not in clean
    assert "<script" not in clean
    assert "alert(1)" not in clean
    assert 'href="https://example.com"' in clean
    assert 'target="_blank"' in clean
    assert "javascript:" not in clean
    assert "<img" not in clean


def test_only_managers_write_announcements(client, login):
    login("agent")
    res = client.post("/api/announcements", json={"title": "Hi", "content": "x"})
    assert res.status_code == 403

    login("admin")
    created = _announce(client, content='<p>Ok<script>bad()</script></p>')
    assert created["author"] == "Site Admin"
    assert created["published_at"] is not None
    assert "<script" not in created["content"]

    invalid = client.post("/api/announcements", json={"title": "Hi", "content": "x", "category": "Gossip"})
    assert invalid.status_code == 400


def test_list_orders_pinned_first_then_newest(client, login):
    login("admin")
    _announce(client, title="Older", published_at="2026-01-01T09:00:00")
    _announce(client, title="Newer", published_at="2026-02-01T09:00:00")
    _announce(client, title="Pinned", is_pinned=True, published_at="2025-12-01T09:00:00")
    _announce(client, title="Draft", is_published=False)

    titles = [a["title"] for a in client.get("/api/announcements").json()]
    assert titles == ["Pinned", "Newer", "Older"]

    with_drafts = [a["title"] for a in client.get("/api/announcements", params={"include_drafts": True}).json()]
    assert "Draft" in with_drafts

    login("agent")
    agent_view = [a["title"] for a in client.get("/api/announcements", params={"include_drafts": True}).json()]
    assert "Draft" not in agent_view


def test_archived_hidden_unless_requested(client, login):
    login("admin")
    item = _announce(client, title="Old news")
    client.patch(f"/api/announcements/{item['id']}", json={"archived_at": "2026-03-01T00:00:00"})

    assert client.get("/api/announcements").json() == []
    archived = client.get("/api/announcements", params={"include_archived": True}).json()
    assert [a["title"] for a in archived] == ["Old news"]


def test_reads_and_unread_count(client, login):
    login("admin")
    first = _announce(client, title="One")
    second = _announce(client, title="Two")
    _announce(client, title="Draft", is_published=False)

    login("agent")
    assert client.get("/api/announcements/unread-count").json() == {"count": 2}
    assert all(a["is_read"] is False for a in client.get("/api/announcements").json())

    assert client.post(f"/api/announcements/{first['id']}/read").status_code == 200
    assert client.post(f"/api/announcements/{first['id']}/read").status_code == 200
    assert client.get("/api/announcements/unread-count").json() == {"count": 1}

    batch = client.post("/api/announcements/batch-read", json={"announcement_ids": [first["id"], second["id"]]})
    assert batch.status_code == 200
    assert client.get("/api/announcements/unread-count").json() == {"count": 0}
    flags = {a["title"]: a["is_read"] for a in client.get("/api/announcements").json()}
    assert flags == {"One": True, "Two": True}

    assert client.post("/api/announcements/missing/read").status_code == 404


def test_unread_count_requires_login(client, users, monkeypatch):
    from frontdesk.config import settings

    monkeypatch.setattr(settings, "AUTH_REQUIRED", False)
    assert client.get("/api/announcements/unread-count").status_code == 401
    listed = client.get("/api/announcements")
    assert listed.status_code == 200


def test_publishing_a_draft_stamps_published_at_once(client, login):
    login("admin")
    draft = _announce(client, is_published=False)
    assert draft["published_at"] is None

    published = client.patch(f"/api/announcements/{draft['id']}", json={"is_published": True}).json()
    stamp = published["published_at"]
    assert stamp is not None

    client.patch(f"/api/announcements/{draft['id']}", json={"is_published": False})
    again = client.patch(f"/api/announcements/{draft['id']}", json={"is_published": True}).json()
    assert again["published_at"] == stamp

    assert client.delete(f"/api/announcements/{draft['id']}").status_code == 200
    assert client.get(f"/api/announcements/{draft['id']}").status_code == 404


def test_update_rejects_null_for_required_fields(client, login):
    login("admin")
    item = _announce(client)

    for field in ("title", "category", "content", "is_pinned", "is_published"):
        res = client.patch(f"/api/announcements/{item['id']}", json={field: None})
        assert res.status_code == 400, field

    assert client.get(f"/api/announcements/{item['id']}").json()["title"] == "Holiday hours"
