import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from app.db.repositories.notification_repository import NotificationRepository


def question_by_title(template: dict, title: str) -> dict:
    return next(q for q in template["questions"] if q["title"] == title)


def fixed_question(template: dict, question_type: str) -> dict:
    return next(q for q in template["questions"] if q["type"] == question_type)


@pytest.fixture
async def public_template(create_template):
    return await create_template(is_public=True)


async def submit(client: AsyncClient, template: dict, headers: dict, answers: list):
    return await client.post(
        f"/templates/{template['id']}/forms",
        json={"answers": answers},
        headers=headers
    )


async def test_submit_form_adds_fixed_answers(client: AsyncClient, public_template, respondent, auth):
    score = question_by_title(public_template, "Score")
    recommend = question_by_title(public_template, "Would recommend")

    response = await submit(client, public_template, auth(respondent), [
        {"question_id": score["id"], "value": 7},
        {"question_id": recommend["id"], "value": True},
    ])

    assert response.status_code == 201
    form = response.json()
    values = {a["question_id"]: a["value"] for a in form["answers"]}
    assert values[score["id"]] == "7"
    assert values[recommend["id"]] == "true"
    assert values[fixed_question(public_template, "fixed_user")["id"]] == respondent.email
    assert values[fixed_question(public_template, "fixed_date")["id"]]
    assert len(form["answers"]) == 4


async def test_creator_cannot_submit(client: AsyncClient, public_template, creator, auth):
    score = question_by_title(public_template, "Score")

    response = await submit(client, public_template, auth(creator), [{"question_id": score["id"], "value": 1}])

    assert response.status_code == 403
    assert response.json()["detail"] == "Creators cannot fill their own templates"


async def test_admin_creator_cannot_submit(client: AsyncClient, admin_user, auth, template_payload):
    created = await client.post("/templates/", json={**template_payload, "is_public": True}, headers=auth(admin_user))
    template = created.json()
    score = question_by_title(template, "Score")

    response = await submit(client, template, auth(admin_user), [{"question_id": score["id"], "value": 1}])

    assert response.status_code == 403
    assert (await client.get("/forms/", headers=auth(admin_user))).json() == []


async def test_private_template_submission(client: AsyncClient, create_template, respondent, outsider, admin_user, auth):
    template = await create_template(access_user_ids=[respondent.id])
    score = question_by_title(template, "Score")
    answers = [{"question_id": score["id"], "value": 3}]

    assert (await submit(client, template, auth(outsider), answers)).status_code == 403
    assert (await submit(client, template, auth(respondent), answers)).status_code == 201
    assert (await submit(client, template, auth(admin_user), answers)).status_code == 201


async def test_submit_rejects_foreign_and_fixed_questions(client: AsyncClient, public_template, create_template, respondent, auth):
    other = await create_template(is_public=True)
    foreign = question_by_title(other, "Score")
    fixed = fixed_question(public_template, "fixed_user")

    foreign_response = await submit(client, public_template, auth(respondent), [{"question_id": foreign["id"], "value": 1}])
    assert foreign_response.status_code == 400

    fixed_response = await submit(client, public_template, auth(respondent), [{"question_id": fixed["id"], "value": "me"}])
    assert fixed_response.status_code == 400


async def test_submit_rejects_null_value(client: AsyncClient, public_template, respondent, auth):
    score = question_by_title(public_template, "Score")

    response = await submit(client, public_template, auth(respondent), [{"question_id": score["id"], "value": None}])

    assert response.status_code == 400


async def test_submission_notifies_creator(client: AsyncClient, public_template, creator, respondent, auth):
    score = question_by_title(public_template, "Score")
    await submit(client, public_template, auth(respondent), [{"question_id": score["id"], "value": 2}])

    response = await client.get("/notifications/", headers=auth(creator))

    assert response.status_code == 200
    notifications = response.json()
    assert len(notifications) == 1
    assert "Alice" in notifications[0]["message"]
    assert notifications[0]["is_read"] is False

    marked = await client.post(f"/notifications/{notifications[0]['id']}/read", headers=auth(creator))
    assert marked.json()["is_read"] is True

    foreign = await client.post(f"/notifications/{notifications[0]['id']}/read", headers=auth(respondent))
    assert foreign.status_code == 403


async def test_submission_survives_notification_failure(client: AsyncClient, public_template, creator, respondent, auth, monkeypatch):
    async def failing_create(self, notification):
        raise OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))

    monkeypatch.setattr(NotificationRepository, "create", failing_create)
    score = question_by_title(public_template, "Score")

    response = await submit(client, public_template, auth(respondent), [{"question_id": score["id"], "value": 4}])

    assert response.status_code == 201
    forms = (await client.get("/forms/", headers=auth(respondent))).json()
    assert [f["id"] for f in forms] == [response.json()["id"]]
    assert (await client.get("/notifications/", headers=auth(creator))).json() == []


async def test_update_form_replaces_answers(client: AsyncClient, public_template, creator, respondent, auth):
    score = question_by_title(public_template, "Score")
    group = question_by_title(public_template, "Your group")
    created = await submit(client, public_template, auth(respondent), [
        {"question_id": score["id"], "value": 2},
        {"question_id": group["id"], "value": "A-1"},
    ])
    form_id = created.json()["id"]

    response = await client.put(
        f"/forms/{form_id}",
        json={"answers": [{"question_id": score["id"], "value": 9.0}]},
        headers=auth(creator)
    )

    assert response.status_code == 200
    values = {a["question_id"]: a["value"] for a in response.json()["answers"]}
    assert values[score["id"]] == "9"
    assert group["id"] not in values
    # системный ответ остается за отправителем, а не за редактором
    assert values[fixed_question(public_template, "fixed_user")["id"]] == respondent.email


async def test_form_permissions(client: AsyncClient, public_template, creator, respondent, outsider, admin_user, auth):
    score = question_by_title(public_template, "Score")
    created = await submit(client, public_template, auth(respondent), [{"question_id": score["id"], "value": 5}])
    url = f"/forms/{created.json()['id']}"

    assert (await client.get(url, headers=auth(respondent))).status_code == 200
    assert (await client.get(url, headers=auth(creator))).status_code == 200
    assert (await client.get(url, headers=auth(admin_user))).status_code == 200
    assert (await client.get(url, headers=auth(outsider))).status_code == 403
    assert (await client.delete(url, headers=auth(outsider))).status_code == 403

    assert (await client.delete(url, headers=auth(respondent))).status_code == 204
    assert (await client.get(url, headers=auth(respondent))).status_code == 404


async def test_list_forms(client: AsyncClient, public_template, creator, respondent, outsider, auth):
    score = question_by_title(public_template, "Score")
    created = await submit(client, public_template, auth(respondent), [{"question_id": score["id"], "value": 5}])
    form_id = created.json()["id"]

    assert [f["id"] for f in (await client.get("/forms/", headers=auth(respondent))).json()] == [form_id]
    assert [f["id"] for f in (await client.get("/forms/", headers=auth(creator))).json()] == [form_id]
    assert (await client.get("/forms/", headers=auth(outsider))).json() == []


async def test_comments(client: AsyncClient, create_template, creator, respondent, outsider, auth):
    template = await create_template(access_user_ids=[respondent.id])
    url = f"/templates/{template['id']}/comments"

    own = await client.post(url, json={"content": "My own"}, headers=auth(creator))
    assert own.status_code == 403

    denied = await client.post(url, json={"content": "Let me in"}, headers=auth(outsider))
    assert denied.status_code == 403

    empty = await client.post(url, json={"content": "   "}, headers=auth(respondent))
    assert empty.status_code == 400

    created = await client.post(url, json={"content": "Great form"}, headers=auth(respondent))
    assert created.status_code == 201
    comment = created.json()
    assert comment["user_name"] == "Alice"

    edited = await client.put(f"{url}/{comment['id']}", json={"content": "Edited"}, headers=auth(respondent))
    assert edited.json()["content"] == "Edited"

    not_author = await client.put(f"{url}/{comment['id']}", json={"content": "Hacked"}, headers=auth(creator))
    assert not_author.status_code == 403

    listed = await client.get(url, headers=auth(creator))
    assert [c["content"] for c in listed.json()] == ["Edited"]

    deleted = await client.delete(f"{url}/{comment['id']}", headers=auth(respondent))
    assert deleted.status_code == 204


async def test_likes(client: AsyncClient, public_template, creator, respondent, auth):
    url = f"/templates/{public_template['id']}/like"

    assert (await client.post(url, headers=auth(creator))).status_code == 403

    liked = await client.post(url, headers=auth(respondent))
    assert liked.status_code == 200
    assert liked.json()["likes_count"] == 1

    duplicate = await client.post(url, headers=auth(respondent))
    assert duplicate.status_code == 409

    detail = await client.get(f"/templates/{public_template['id']}", headers=auth(respondent))
    assert detail.json()["liked_by_me"] is True
    assert detail.json()["likes_count"] == 1

    unliked = await client.delete(url, headers=auth(respondent))
    assert unliked.json()["likes_count"] == 0

    missing = await client.delete(url, headers=auth(respondent))
    assert missing.status_code == 404
