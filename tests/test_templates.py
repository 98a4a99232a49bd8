from httpx import AsyncClient

from app.db.repositories.template_repository import TemplateRepository


def question_by_title(template: dict, title: str) -> dict:
    return next(q for q in template["questions"] if q["title"] == title)


def non_fixed_orders(template: dict) -> dict:
    return {q["id"]: q["order"] for q in template["questions"] if not q["fixed"]}


async def test_create_template_appends_fixed_questions(create_template):
    template = await create_template()

    fixed = [q for q in template["questions"] if q["fixed"]]
    assert sorted((q["type"], q["order"]) for q in fixed) == [("fixed_date", -1), ("fixed_user", -2)]
    assert all(q["required"] for q in fixed)

    user_questions = [q for q in template["questions"] if not q["fixed"]]
    assert [q["order"] for q in user_questions] == [0, 1, 2, 3]
    assert sorted(template["tags"]) == ["course", "feedback"]
    assert "<strong>what</strong>" in template["description_html"]


async def test_create_template_rejects_blank_title(client: AsyncClient, creator, auth, template_payload):
    response = await client.post("/templates/", json={**template_payload, "title": "   "}, headers=auth(creator))

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_create_template_rejects_fixed_field(client: AsyncClient, creator, auth, template_payload):
    payload = {**template_payload, "fields": [{"type": "fixed_user", "label": "Me"}]}

    response = await client.post("/templates/", json=payload, headers=auth(creator))

    assert response.status_code == 400


async def test_create_template_rejects_unknown_topic(client: AsyncClient, creator, auth, template_payload):
    response = await client.post("/templates/", json={**template_payload, "topic": "Sports"}, headers=auth(creator))

    assert response.status_code == 422


async def test_create_template_rejects_long_tag(client: AsyncClient, creator, auth, template_payload):
    payload = {**template_payload, "tags": ["x" * 65]}

    response = await client.post("/templates/", json=payload, headers=auth(creator))

    assert response.status_code == 422
    assert (await client.get("/tags/")).json() == []


async def test_create_template_rejects_unknown_access_user(client: AsyncClient, creator, auth, template_payload):
    payload = {**template_payload, "access_user_ids": [999999]}

    response = await client.post("/templates/", json=payload, headers=auth(creator))

    assert response.status_code == 400


async def test_create_requires_authentication(client: AsyncClient, template_payload):
    response = await client.post("/templates/", json=template_payload)

    assert response.status_code == 401


async def test_private_template_read_access(client: AsyncClient, create_template, respondent, outsider, admin_user, auth):
    template = await create_template(access_user_ids=[respondent.id])
    url = f"/templates/{template['id']}"

    assert (await client.get(url, headers=auth(respondent))).status_code == 200
    assert (await client.get(url, headers=auth(admin_user))).status_code == 200
    assert (await client.get(url, headers=auth(outsider))).status_code == 403
    assert (await client.get(url)).status_code == 401


async def test_public_template_is_readable_anonymously(client: AsyncClient, create_template):
    template = await create_template(is_public=True)

    response = await client.get(f"/templates/{template['id']}")

    assert response.status_code == 200
    assert response.json()["title"] == "Course feedback"


async def test_missing_template(client: AsyncClient):
    response = await client.get("/templates/424242")

    assert response.status_code == 404


async def test_list_templates_visibility(client: AsyncClient, create_template, respondent, outsider, auth):
    public = await create_template(is_public=True, title="Public one")
    shared = await create_template(title="Shared one", access_user_ids=[respondent.id])
    await create_template(title="Hidden one")

    anonymous = await client.get("/templates/")
    assert [t["id"] for t in anonymous.json()] == [public["id"]]

    as_outsider = await client.get("/templates/", headers=auth(outsider))
    assert {t["id"] for t in as_outsider.json()} == {public["id"]}

    as_respondent = await client.get("/templates/", headers=auth(respondent))
    assert {t["id"] for t in as_respondent.json()} == {public["id"], shared["id"]}

    shared_list = await client.get("/templates/shared", headers=auth(respondent))
    assert [t["id"] for t in shared_list.json()] == [shared["id"]]


async def test_list_templates_filters(client: AsyncClient, create_template):
    quiz = await create_template(is_public=True, title="Math quiz", tags=["math"])
    await create_template(is_public=True, title="History survey", tags=["history"])

    by_tag = await client.get("/templates/", params={"tag": "math"})
    assert [t["id"] for t in by_tag.json()] == [quiz["id"]]

    by_text = await client.get("/templates/", params={"search": "quiz"})
    assert [t["id"] for t in by_text.json()] == [quiz["id"]]


async def test_update_without_is_public_makes_template_private(client: AsyncClient, create_template, creator, auth):
    template = await create_template(is_public=True)

    response = await client.put(
        f"/templates/{template['id']}",
        json={"title": "Renamed", "description": "New"},
        headers=auth(creator)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_public"] is False
    assert data["title"] == "Renamed"
    assert data["topic"] == "Education"


async def test_update_replaces_tags(client: AsyncClient, create_template, creator, auth):
    template = await create_template(tags=["a", "b"])

    response = await client.put(
        f"/templates/{template['id']}",
        json={"title": template["title"], "tags": ["b", "c"]},
        headers=auth(creator)
    )

    assert response.status_code == 200
    assert sorted(response.json()["tags"]) == ["b", "c"]

    reread = await client.get(f"/templates/{template['id']}", headers=auth(creator))
    assert sorted(reread.json()["tags"]) == ["b", "c"]


async def test_update_replaces_access(client: AsyncClient, create_template, creator, respondent, outsider, auth):
    template = await create_template(access_user_ids=[respondent.id])

    response = await client.put(
        f"/templates/{template['id']}",
        json={"title": template["title"], "access_user_ids": [outsider.id]},
        headers=auth(creator)
    )

    assert [grant["user_id"] for grant in response.json()["access"]] == [outsider.id]
    assert (await client.get(f"/templates/{template['id']}", headers=auth(respondent))).status_code == 403


async def test_grantee_cannot_modify(client: AsyncClient, create_template, respondent, auth):
    template = await create_template(access_user_ids=[respondent.id])

    response = await client.put(
        f"/templates/{template['id']}",
        json={"title": "Hijacked"},
        headers=auth(respondent)
    )

    assert response.status_code == 403


async def test_add_question_limit_per_type(client: AsyncClient, create_template, creator, auth):
    template = await create_template(fields=[{"type": "checkbox", "label": f"Box {i}"} for i in range(3)])
    url = f"/templates/{template['id']}/questions"

    fourth = await client.post(url, json={"type": "checkbox", "title": "Box 4"}, headers=auth(creator))
    assert fourth.status_code == 201
    assert fourth.json()["order"] == 3

    fifth = await client.post(url, json={"type": "checkbox", "title": "Box 5"}, headers=auth(creator))
    assert fifth.status_code == 400

    other_type = await client.post(url, json={"type": "single_line", "title": "Name"}, headers=auth(creator))
    assert other_type.status_code == 201


async def test_add_fixed_question_is_rejected(client: AsyncClient, create_template, creator, auth):
    template = await create_template()

    response = await client.post(
        f"/templates/{template['id']}/questions",
        json={"type": "fixed_date", "title": "When"},
        headers=auth(creator)
    )

    assert response.status_code == 400


async def test_update_question_type_respects_limit(client: AsyncClient, create_template, creator, auth):
    fields = [{"type": "checkbox", "label": f"Box {i}"} for i in range(4)]
    fields.append({"type": "single_line", "label": "Name"})
    template = await create_template(fields=fields)
    name = question_by_title(template, "Name")
    url = f"/templates/{template['id']}/questions/{name['id']}"

    rejected = await client.patch(url, json={"type": "checkbox"}, headers=auth(creator))
    assert rejected.status_code == 400

    renamed = await client.patch(url, json={"title": "Full name", "required": True}, headers=auth(creator))
    assert renamed.status_code == 200
    assert renamed.json()["title"] == "Full name"
    assert renamed.json()["required"] is True


async def test_fixed_questions_cannot_be_deleted_or_edited(client: AsyncClient, create_template, creator, admin_user, auth):
    template = await create_template()

    for question in (q for q in template["questions"] if q["fixed"]):
        url = f"/templates/{template['id']}/questions/{question['id']}"
        assert (await client.delete(url, headers=auth(creator))).status_code == 400
        assert (await client.delete(url, headers=auth(admin_user))).status_code == 400
        assert (await client.patch(url, json={"title": "x"}, headers=auth(creator))).status_code == 400


async def test_delete_question(client: AsyncClient, create_template, creator, auth):
    template = await create_template()
    comments = question_by_title(template, "Comments")

    response = await client.delete(
        f"/templates/{template['id']}/questions/{comments['id']}",
        headers=auth(creator)
    )
    assert response.status_code == 204

    reread = await client.get(f"/templates/{template['id']}", headers=auth(creator))
    assert comments["id"] not in {q["id"] for q in reread.json()["questions"]}


async def test_delete_question_of_other_template(client: AsyncClient, create_template, creator, auth):
    first = await create_template()
    second = await create_template()
    foreign = question_by_title(second, "Comments")

    response = await client.delete(
        f"/templates/{first['id']}/questions/{foreign['id']}",
        headers=auth(creator)
    )

    assert response.status_code == 404


async def test_reorder_questions(client: AsyncClient, create_template, creator, auth):
    template = await create_template()
    orders = non_fixed_orders(template)
    reversed_items = [{"id": qid, "order": 3 - order} for qid, order in orders.items()]

    response = await client.put(
        f"/templates/{template['id']}/questions/order",
        json={"questions": reversed_items},
        headers=auth(creator)
    )

    assert response.status_code == 200
    assert non_fixed_orders(response.json()) == {item["id"]: item["order"] for item in reversed_items}


async def test_reorder_with_foreign_id_changes_nothing(client: AsyncClient, create_template, creator, auth):
    template = await create_template()
    other = await create_template()
    before = non_fixed_orders(template)

    items = [{"id": qid, "order": order + 10} for qid, order in before.items()]
    items.append({"id": question_by_title(other, "Score")["id"], "order": 0})

    response = await client.put(
        f"/templates/{template['id']}/questions/order",
        json={"questions": items},
        headers=auth(creator)
    )
    assert response.status_code == 400

    reread = await client.get(f"/templates/{template['id']}", headers=auth(creator))
    assert non_fixed_orders(reread.json()) == before


async def test_duplicate_template(client: AsyncClient, create_template, creator, respondent, auth):
    template = await create_template(access_user_ids=[respondent.id])

    response = await client.post(f"/templates/{template['id']}/duplicate", headers=auth(creator))

    assert response.status_code == 201
    copy = response.json()
    assert copy["id"] != template["id"]
    assert copy["title"] == "Course feedback (Copy)"
    assert sorted(copy["tags"]) == sorted(template["tags"])
    assert copy["access"] == []
    assert sorted((q["type"], q["order"]) for q in copy["questions"]) == \
        sorted((q["type"], q["order"]) for q in template["questions"])


async def test_share_template_notifies_grantee(client: AsyncClient, create_template, creator, respondent, auth):
    template = await create_template()

    response = await client.post(
        f"/templates/{template['id']}/share",
        json={"email": respondent.email},
        headers=auth(creator)
    )
    assert response.status_code == 200
    assert respondent.id in {grant["user_id"] for grant in response.json()["access"]}

    again = await client.post(
        f"/templates/{template['id']}/share",
        json={"email": respondent.email},
        headers=auth(creator)
    )
    assert again.status_code == 200
    assert len(again.json()["access"]) == 1

    notifications = await client.get("/notifications/", headers=auth(respondent))
    assert any("Course feedback" in n["message"] for n in notifications.json())


async def test_share_with_unknown_email(client: AsyncClient, create_template, creator, auth):
    template = await create_template()

    response = await client.post(
        f"/templates/{template['id']}/share",
        json={"email": "nobody@example.com"},
        headers=auth(creator)
    )

    assert response.status_code == 404


async def test_concurrent_share_keeps_single_grant(client: AsyncClient, create_template, creator, respondent, auth, monkeypatch):
    template = await create_template()
    url = f"/templates/{template['id']}/share"
    await client.post(url, json={"email": respondent.email}, headers=auth(creator))

    # второй запрос не видит уже выданный доступ и упирается в первичный ключ
    async def no_access(self, template_id, user_id):
        return False

    monkeypatch.setattr(TemplateRepository, "has_access", no_access)

    response = await client.post(url, json={"email": respondent.email}, headers=auth(creator))

    assert response.status_code == 200
    assert [grant["user_id"] for grant in response.json()["access"]] == [respondent.id]


async def test_delete_template_with_forms(client: AsyncClient, create_template, creator, respondent, auth):
    template = await create_template(is_public=True)
    score = question_by_title(template, "Score")
    submitted = await client.post(
        f"/templates/{template['id']}/forms",
        json={"answers": [{"question_id": score["id"], "value": 4}]},
        headers=auth(respondent)
    )
    assert submitted.status_code == 201
    await client.post(f"/templates/{template['id']}/like", headers=auth(respondent))
    await client.post(f"/templates/{template['id']}/comments", json={"content": "Nice"}, headers=auth(respondent))

    response = await client.delete(f"/templates/{template['id']}", headers=auth(creator))
    assert response.status_code == 204

    assert (await client.get(f"/templates/{template['id']}")).status_code == 404
    assert (await client.get(f"/forms/{submitted.json()['id']}", headers=auth(respondent))).status_code == 404


async def test_outsider_cannot_delete(client: AsyncClient, create_template, outsider, auth):
    template = await create_template(is_public=True)

    response = await client.delete(f"/templates/{template['id']}", headers=auth(outsider))

    assert response.status_code == 403


async def test_tags_listing(client: AsyncClient, create_template):
    await create_template(is_public=True, tags=["open"])
    await create_template(tags=["secret"])

    response = await client.get("/tags/")

    assert [t["name"] for t in response.json()] == ["open"]
