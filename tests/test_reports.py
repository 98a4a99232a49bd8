from httpx import AsyncClient


def question_by_title(template: dict, title: str) -> dict:
    return next(q for q in template["questions"] if q["title"] == title)


async def fill(client: AsyncClient, template: dict, headers: dict, score, recommend):
    answers = [
        {"question_id": question_by_title(template, "Score")["id"], "value": score},
        {"question_id": question_by_title(template, "Would recommend")["id"], "value": recommend},
    ]
    response = await client.post(f"/templates/{template['id']}/forms", json={"answers": answers}, headers=headers)
    assert response.status_code == 201
    return response.json()


async def test_results(client: AsyncClient, create_template, make_user, auth):
    template = await create_template(is_public=True)
    for score, recommend in ((3, True), (5, True), (7, False)):
        await fill(client, template, auth(await make_user()), score, recommend)

    response = await client.get(f"/templates/{template['id']}/results")

    assert response.status_code == 200
    results = response.json()
    assert results["forms_count"] == 3
    assert results["numeric"][0]["count"] == 3
    assert results["numeric"][0]["average"] == 5
    assert results["numeric"][0]["max"] == 7
    assert results["checkboxes"][0]["true_count"] == 2
    assert results["checkboxes"][0]["false_count"] == 1


async def test_results_require_read_access(client: AsyncClient, create_template, outsider, auth):
    template = await create_template()

    assert (await client.get(f"/templates/{template['id']}/results", headers=auth(outsider))).status_code == 403
    assert (await client.get(f"/templates/{template['id']}/export")).status_code == 401


async def test_csv_export(client: AsyncClient, create_template, creator, respondent, auth):
    template = await create_template(is_public=True)
    form = await fill(client, template, auth(respondent), 5, True)

    response = await client.get(f"/templates/{template['id']}/export", headers=auth(creator))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "Course%20feedback_responses.csv" in response.headers["content-disposition"]

    header, row = response.text.split("\n")
    assert header == '"Form ID","Submitted By","Submitted At","Your group","Comments","Score","Would recommend"'
    assert row.startswith(f'{form["id"]},"Alice",')
    assert row.endswith(',"","","5","true"')
