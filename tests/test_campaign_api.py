from fastapi.testclient import TestClient

from services.submission_rate_limiter import SubmissionRateLimiter

ADMIN_TOKEN = "test-admin-token"
ADMIN_AUTH_HEADER = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


def _submit(client: TestClient, campaign_id: str, form_data):
    return client.post(f"/api/v1/campaigns/{campaign_id}/submissions", json={"formData": form_data})


def test_draft_campaign_is_hidden_from_slug_route(client: TestClient, make_campaign) -> None:
    make_campaign(title="Draft", slug="draft", status="DRAFT")

    response = client.get("/api/v1/campaigns/slug/draft")

    assert response.status_code == 404
    assert response.json()["detail"] == {"code": "campaign.not_found", "message": "Campaign not found"}


def test_demo_campaign_submission_flow(client: TestClient, make_campaign) -> None:
    campaign = make_campaign(slug="demo", formFields=[{"name": "email", "required": True}])

    rejected = _submit(client, campaign["id"], {})
    assert rejected.status_code == 400
    detail = rejected.json()["detail"]
    assert detail["code"] == "submission.invalid"
    assert detail["errors"] == {"email": ["This field is required."]}

    accepted = _submit(client, campaign["id"], {"email": "a@b.com"})
    assert accepted.status_code == 201
    body = accepted.json()
    assert body["success"] is True
    assert body["submissionId"]


def test_public_page_exposes_form_and_ctas(client: TestClient, make_campaign) -> None:
    make_campaign(
        slug="launch",
        content="<p>Hello</p>",
        ctas=[{"label": "Get Started", "url": "/contact"}],
        formFields=[{"name": "phone", "type": "tel", "placeholder": "010-0000-0000"}],
    )

    response = client.get("/api/v1/campaigns/slug/launch")

    assert response.status_code == 200
    body = response.json()
    assert body["ctas"] == [{"label": "Get Started", "url": "/contact", "order": 0}]
    assert body["content"] == "<p>Hello</p>"
    field = body["formFields"][0]
    assert field["name"] == "phone"
    assert field["id"] == "phone"
    assert field["label"] == "phone"
    assert field["type"] == "tel"
    assert field["required"] is False


def test_form_disabled_rejects_without_storing(client: TestClient, make_campaign) -> None:
    campaign = make_campaign(enableForm=False)

    response = _submit(client, campaign["id"], {"email": "a@b.com"})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "campaign.form_disabled"
    listing = client.get(f"/api/v1/campaigns/{campaign['id']}/submissions", headers=ADMIN_AUTH_HEADER)
    assert listing.json()["pagination"]["total"] == 0


def test_unpublished_campaign_rejects_submissions(client: TestClient, make_campaign) -> None:
    campaign = make_campaign(status="ARCHIVED")

    response = _submit(client, campaign["id"], {"email": "a@b.com"})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Campaign is not published"


def test_submission_to_unknown_campaign_is_not_found(client: TestClient) -> None:
    response = _submit(client, "00000000-0000-0000-0000-000000000000", {"email": "a@b.com"})
    assert response.status_code == 404


def test_non_object_form_data_is_rejected(client: TestClient, make_campaign) -> None:
    campaign = make_campaign()

    response = _submit(client, campaign["id"], ["a@b.com"])

    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == {"formData": ["Expected an object of field values."]}


def test_unparseable_body_is_a_bad_request(client: TestClient, make_campaign) -> None:
    campaign = make_campaign()

    response = client.post(
        f"/api/v1/campaigns/{campaign['id']}/submissions",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "request.invalid"


def test_list_returns_summaries_with_status_filter(client: TestClient, make_campaign) -> None:
    make_campaign(title="Live", startDate="2025-02-01T00:00:00Z")
    make_campaign(title="Planned", status="SCHEDULED", startDate="2025-03-01T00:00:00Z")

    response = client.get("/api/v1/campaigns")
    assert response.status_code == 200
    summaries = response.json()
    assert [item["title"] for item in summaries] == ["Planned", "Live"]
    assert "content" not in summaries[0]
    assert "formFields" not in summaries[0]

    filtered = client.get("/api/v1/campaigns", params={"status": "PUBLISHED"})
    assert [item["title"] for item in filtered.json()] == ["Live"]

    invalid = client.get("/api/v1/campaigns", params={"status": "LIVE"})
    assert invalid.status_code == 400


def test_put_replaces_ctas_instead_of_merging(client: TestClient, make_campaign) -> None:
    campaign = make_campaign(
        ctas=[
            {"label": "One", "url": "/1"},
            {"label": "Two", "url": "/2"},
            {"label": "Three", "url": "/3"},
        ]
    )

    updated = client.put(
        f"/api/v1/campaigns/{campaign['id']}",
        json={"ctas": [{"label": "Only", "url": "/only"}]},
        headers=ADMIN_AUTH_HEADER,
    )
    assert updated.status_code == 200

    fetched = client.get(f"/api/v1/campaigns/{campaign['id']}", headers=ADMIN_AUTH_HEADER)
    assert fetched.json()["ctas"] == [{"label": "Only", "url": "/only", "order": 0}]


def test_put_applies_partial_updates(client: TestClient, make_campaign) -> None:
    campaign = make_campaign(title="Before", ctas=[{"label": "Keep", "url": "/keep"}])

    response = client.put(
        f"/api/v1/campaigns/{campaign['id']}",
        json={"title": "After", "status": "DRAFT"},
        headers=ADMIN_AUTH_HEADER,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["title"] == "After"
    assert body["status"] == "DRAFT"
    assert body["slug"] == campaign["slug"]
    assert len(body["ctas"]) == 1


def test_slug_conflict_returns_409(client: TestClient, make_campaign) -> None:
    make_campaign(slug="taken")
    response = client.post(
        "/api/v1/campaigns",
        json={"title": "Again", "slug": "taken"},
        headers=ADMIN_AUTH_HEADER,
    )
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "campaign.slug_conflict"


def test_admin_detail_includes_recent_submissions(client: TestClient, make_campaign) -> None:
    campaign = make_campaign(status="DRAFT")
    # Admin detail works for drafts even though visitors cannot see them.
    detail = client.get(f"/api/v1/campaigns/{campaign['id']}", headers=ADMIN_AUTH_HEADER)
    assert detail.status_code == 200
    assert detail.json()["recentSubmissions"] == []

    client.put(f"/api/v1/campaigns/{campaign['id']}", json={"status": "PUBLISHED"}, headers=ADMIN_AUTH_HEADER)
    _submit(client, campaign["id"], {"email": "a@b.com"})

    detail = client.get(f"/api/v1/campaigns/{campaign['id']}", headers=ADMIN_AUTH_HEADER).json()
    assert detail["submissionCount"] == 1
    assert detail["views"] == 1
    assert detail["recentSubmissions"][0]["data"] == {"email": "a@b.com"}
    assert detail["recentSubmissions"][0]["userAgent"] == "testclient"


def test_submission_listing_paginates_newest_first(client: TestClient, make_campaign) -> None:
    campaign = make_campaign()
    for index in range(12):
        assert _submit(client, campaign["id"], {"email": f"user{index}@example.com"}).status_code == 201

    response = client.get(
        f"/api/v1/campaigns/{campaign['id']}/submissions",
        params={"page": 2, "limit": 10},
        headers=ADMIN_AUTH_HEADER,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"page": 2, "limit": 10, "total": 12, "pages": 2}
    assert [item["data"]["email"] for item in body["submissions"]] == ["user1@example.com", "user0@example.com"]


def test_delete_removes_campaign_and_submissions(client: TestClient, make_campaign) -> None:
    campaign = make_campaign()
    _submit(client, campaign["id"], {"email": "a@b.com"})
    _submit(client, campaign["id"], {"email": "a@b.com"})

    response = client.delete(f"/api/v1/campaigns/{campaign['id']}", headers=ADMIN_AUTH_HEADER)

    assert response.status_code == 200
    assert response.json() == {"success": True, "deletedSubmissions": 2}
    assert client.get(f"/api/v1/campaigns/{campaign['id']}", headers=ADMIN_AUTH_HEADER).status_code == 404
    feed = client.get("/api/v1/campaign-submissions", headers=ADMIN_AUTH_HEADER).json()
    assert feed["pagination"]["total"] == 0


def test_intake_endpoint_accepts_campaign_id_payload(client: TestClient, make_campaign) -> None:
    campaign = make_campaign(title="Webinar")

    response = client.post(
        "/api/v1/campaign-submissions",
        json={"campaignId": campaign["id"], "data": {"email": "a@b.com"}},
    )
    assert response.status_code == 201

    feed = client.get(
        "/api/v1/campaign-submissions",
        params={"campaignId": campaign["id"]},
        headers=ADMIN_AUTH_HEADER,
    )
    body = feed.json()
    assert body["pagination"]["total"] == 1
    assert body["submissions"][0]["campaign"] == {
        "id": campaign["id"],
        "title": "Webinar",
        "slug": campaign["slug"],
    }


def test_analytics_endpoint(client: TestClient, make_campaign) -> None:
    campaign = make_campaign()
    _submit(client, campaign["id"], {"email": "a@b.com"})

    response = client.get(f"/api/v1/campaigns/{campaign['id']}/analytics", headers=ADMIN_AUTH_HEADER)

    assert response.status_code == 200
    body = response.json()
    assert body["totalSubmissions"] == 1
    assert body["submissionsToday"] == 1
    assert body["views"] == 1
    assert body["conversionRate"] == 100.0


def test_submissions_are_rate_limited_per_client(
    client: TestClient, make_campaign, rate_limiter: SubmissionRateLimiter
) -> None:
    campaign = make_campaign()
    rate_limiter.limit = 2

    statuses = [_submit(client, campaign["id"], {"email": "a@b.com"}).status_code for _ in range(3)]

    assert statuses == [201, 201, 429]
    rotated = client.post(
        f"/api/v1/campaigns/{campaign['id']}/submissions",
        json={"formData": {"email": "a@b.com"}},
        headers={"X-Forwarded-For": "198.51.100.4"},
    )
    assert rotated.status_code == 429


def test_forwarded_client_gets_own_budget_behind_trusted_proxy(
    client: TestClient, make_campaign, rate_limiter: SubmissionRateLimiter, monkeypatch
) -> None:
    monkeypatch.setattr("services.submission_rate_limiter.TRUST_PROXY_HEADERS", True)
    campaign = make_campaign()
    rate_limiter.limit = 1

    assert _submit(client, campaign["id"], {"email": "a@b.com"}).status_code == 201
    assert _submit(client, campaign["id"], {"email": "a@b.com"}).status_code == 429
    other_client = client.post(
        f"/api/v1/campaigns/{campaign['id']}/submissions",
        json={"formData": {"email": "a@b.com"}},
        headers={"X-Forwarded-For": "198.51.100.4"},
    )
    assert other_client.status_code == 201

    feed = client.get("/api/v1/campaign-submissions", headers=ADMIN_AUTH_HEADER).json()
    assert {item["ipAddress"] for item in feed["submissions"]} == {"testclient", "198.51.100.4"}


def test_non_finite_numbers_are_a_validation_error(client: TestClient, make_campaign) -> None:
    campaign = make_campaign(
        formFields=[{"name": "email", "type": "email", "required": True}, {"name": "budget", "type": "number"}]
    )

    response = client.post(
        f"/api/v1/campaigns/{campaign['id']}/submissions",
        content='{"formData": {"email": "a@b.com", "note": NaN, "budget": Infinity}}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "submission.invalid"
    assert set(detail["errors"]) == {"note", "budget"}
    listing = client.get(f"/api/v1/campaigns/{campaign['id']}/submissions", headers=ADMIN_AUTH_HEADER)
    assert listing.json()["pagination"]["total"] == 0


def test_huge_page_numbers_return_an_empty_page(client: TestClient, make_campaign) -> None:
    campaign = make_campaign()
    _submit(client, campaign["id"], {"email": "a@b.com"})
    huge_page = "100000000000000000000"

    per_campaign = client.get(
        f"/api/v1/campaigns/{campaign['id']}/submissions",
        params={"page": huge_page, "limit": 10},
        headers=ADMIN_AUTH_HEADER,
    )
    feed = client.get("/api/v1/campaign-submissions", params={"page": huge_page}, headers=ADMIN_AUTH_HEADER)

    for response in (per_campaign, feed):
        assert response.status_code == 200
        body = response.json()
        assert body["submissions"] == []
        assert body["pagination"]["total"] == 1
        assert body["pagination"]["page"] == int(huge_page)


def test_healthz_reports_database_status(client: TestClient) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": {"ok": True}}

    status = client.get("/api/v1/health/status")
    assert status.json()["status"] == "ok"

    root = client.get("/")
    assert root.json()["status"] == "ok"


def test_healthz_reports_unavailable_database(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr("web.routers.health.ping_database", lambda: (False, "connection refused"))

    response = client.get("/healthz")

    assert response.status_code == 503
    assert response.json() == {"status": "unhealthy", "database": {"ok": False, "error": "connection refused"}}
