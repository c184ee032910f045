from datetime import date

from cmms.models import WorkOrder


def create_work_order(client, tenant, **fields):
    payload = {"title": "Replace door seal"}
    payload.update(fields)
    response = client.post(f"{tenant['base']}/work-orders", json=payload, headers=tenant["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def get_pm(client, tenant, pm_id):
    response = client.get(f"{tenant['base']}/preventive-maintenance/{pm_id}", headers=tenant["headers"])
    assert response.status_code == 200
    return response.json()


def test_standalone_work_order_gets_placeholder_schedule(client, tenant):
    wo = create_work_order(client, tenant, description="Walk-in freezer", priority="high")

    assert wo["status"] == "pending"
    assert wo["priority"] == "high"
    assert wo["preventive_maintenance_id"] is not None

    pm = get_pm(client, tenant, wo["preventive_maintenance_id"])
    today = date.today().isoformat()
    assert pm["schedule_type"] == "regularInterval"
    assert pm["frequency"] == 1
    assert pm["time_unit"] == "day"
    assert pm["start_date"] == today
    assert pm["next_due_date"] == today
    assert pm["status"] == "pending"
    assert pm["is_standalone"] is True
    assert pm["created_by_id"] == tenant["user_id"]
    assert "Replace door seal" in pm["title"]
    assert [w["id"] for w in pm["work_orders"]] == [wo["id"]]


def test_work_order_defaults(client, tenant):
    wo = create_work_order(client, tenant)

    assert wo["status"] == "pending"
    assert wo["priority"] == "medium"
    assert wo["preventive_maintenance"]["id"] == wo["preventive_maintenance_id"]


def test_work_order_attached_to_existing_pm(client, tenant, create_pm):
    pm = create_pm(tenant)
    wo = create_work_order(client, tenant, preventive_maintenance_id=pm["id"])

    assert wo["preventive_maintenance_id"] == pm["id"]
    listing = client.get(f"{tenant['base']}/preventive-maintenance", headers=tenant["headers"]).json()
    assert listing["total"] == 1


def test_create_work_order_requires_title(client, tenant):
    for payload in ({}, {"title": "  "}):
        response = client.post(f"{tenant['base']}/work-orders", json=payload, headers=tenant["headers"])
        assert response.status_code == 400

    listing = client.get(f"{tenant['base']}/preventive-maintenance", headers=tenant["headers"]).json()
    assert listing["total"] == 0


def test_create_work_order_rejects_unknown_enums(client, tenant):
    bad_status = client.post(
        f"{tenant['base']}/work-orders",
        json={"title": "Fix", "status": "done"},
        headers=tenant["headers"],
    )
    bad_priority = client.post(
        f"{tenant['base']}/work-orders",
        json={"title": "Fix", "priority": "critical"},
        headers=tenant["headers"],
    )

    assert bad_status.status_code == 400
    assert bad_priority.status_code == 400


def test_create_work_order_with_unknown_pm_returns_404(client, tenant):
    response = client.post(
        f"{tenant['base']}/work-orders",
        json={"title": "Fix", "preventive_maintenance_id": 31337},
        headers=tenant["headers"],
    )
    assert response.status_code == 404


def test_list_work_orders_filters_and_sorts(client, tenant):
    create_work_order(client, tenant, title="Bravo", priority="low")
    create_work_order(client, tenant, title="Alpha", priority="high")
    create_work_order(client, tenant, title="Charlie", priority="high", status="inProgress")

    body = client.get(f"{tenant['base']}/work-orders", headers=tenant["headers"]).json()
    assert body["total"] == 3

    high = client.get(
        f"{tenant['base']}/work-orders",
        params={"priority": "high", "sort_by": "title", "sort_order": "asc"},
        headers=tenant["headers"],
    ).json()
    assert [wo["title"] for wo in high["data"]] == ["Alpha", "Charlie"]

    in_progress = client.get(
        f"{tenant['base']}/work-orders",
        params={"status": "inProgress"},
        headers=tenant["headers"],
    ).json()
    assert in_progress["total"] == 1
    assert in_progress["data"][0]["title"] == "Charlie"


def test_update_work_order_fields(client, tenant, create_asset):
    wo = create_work_order(client, tenant)
    asset = create_asset(tenant)

    response = client.put(
        f"{tenant['base']}/work-orders/{wo['id']}",
        json={"title": "Replace gasket", "priority": "low", "asset_id": asset["id"], "due_date": "2024-05-01"},
        headers=tenant["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Replace gasket"
    assert body["priority"] == "low"
    assert body["asset"] == {"id": asset["id"], "name": asset["name"]}
    assert body["due_date"] == "2024-05-01"
    assert body["status"] == "pending"


def test_update_work_order_rejects_blank_title(client, tenant):
    wo = create_work_order(client, tenant)

    response = client.put(
        f"{tenant['base']}/work-orders/{wo['id']}",
        json={"title": ""},
        headers=tenant["headers"],
    )
    assert response.status_code == 400


def test_in_progress_work_order_marks_pm_in_progress(client, tenant, create_pm):
    pm = create_pm(tenant)
    wo = create_work_order(client, tenant, preventive_maintenance_id=pm["id"])

    client.put(f"{tenant['base']}/work-orders/{wo['id']}", json={"status": "inProgress"}, headers=tenant["headers"])

    assert get_pm(client, tenant, pm["id"])["status"] == "inProgress"


def test_complete_work_order_advances_schedule(client, tenant, create_pm):
    pm = create_pm(
        tenant,
        create_work_order_now=True,
        work_order_title="Monthly inspection",
        work_order_priority="medium",
    )
    wo = pm["work_orders"][0]

    response = client.post(
        f"{tenant['base']}/work-orders/{wo['id']}/complete",
        json={"completed_on": "2024-02-03", "completion_notes": "All good"},
        headers=tenant["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["completed_at"] is not None
    assert body["completion_notes"] == "All good"

    pm_after = get_pm(client, tenant, pm["id"])
    assert pm_after["last_completed_date"] == "2024-02-03"
    assert pm_after["next_due_date"] == "2024-03-01"
    assert pm_after["status"] == "pending"


def test_complete_after_completion_schedule(client, tenant, create_pm):
    pm = create_pm(
        tenant,
        schedule_type="afterCompletion",
        frequency=2,
        time_unit="week",
        create_work_order_now=True,
        work_order_title="Lubricate bearings",
        work_order_priority="low",
    )

    client.post(
        f"{tenant['base']}/work-orders/{pm['work_orders'][0]['id']}/complete",
        json={"completed_on": "2024-02-10"},
        headers=tenant["headers"],
    )

    assert get_pm(client, tenant, pm["id"])["next_due_date"] == "2024-02-24"


def test_complete_past_end_date_closes_schedule(client, tenant, create_pm):
    pm = create_pm(
        tenant,
        end_date="2024-02-15",
        create_work_order_now=True,
        work_order_title="Final inspection",
        work_order_priority="high",
    )

    client.post(
        f"{tenant['base']}/work-orders/{pm['work_orders'][0]['id']}/complete",
        json={"completed_on": "2024-02-01"},
        headers=tenant["headers"],
    )

    assert get_pm(client, tenant, pm["id"])["status"] == "completed"


def test_completing_standalone_work_order_closes_placeholder(client, tenant):
    wo = create_work_order(client, tenant)

    response = client.post(f"{tenant['base']}/work-orders/{wo['id']}/complete", headers=tenant["headers"])

    assert response.status_code == 200
    assert get_pm(client, tenant, wo["preventive_maintenance_id"])["status"] == "completed"


def test_complete_twice_is_rejected(client, tenant):
    wo = create_work_order(client, tenant)
    client.post(f"{tenant['base']}/work-orders/{wo['id']}/complete", headers=tenant["headers"])

    response = client.post(f"{tenant['base']}/work-orders/{wo['id']}/complete", headers=tenant["headers"])
    assert response.status_code == 400


def test_status_update_to_completed_also_advances(client, tenant, create_pm):
    pm = create_pm(
        tenant,
        next_due_date=date.today().isoformat(),
        start_date=date.today().isoformat(),
        create_work_order_now=True,
        work_order_title="Inspection",
        work_order_priority="medium",
    )

    response = client.put(
        f"{tenant['base']}/work-orders/{pm['work_orders'][0]['id']}",
        json={"status": "completed"},
        headers=tenant["headers"],
    )

    assert response.status_code == 200
    assert response.json()["completed_at"] is not None
    pm_after = get_pm(client, tenant, pm["id"])
    assert pm_after["last_completed_date"] == date.today().isoformat()
    assert pm_after["next_due_date"] > date.today().isoformat()


def test_delete_work_order(client, tenant):
    wo = create_work_order(client, tenant)

    response = client.delete(f"{tenant['base']}/work-orders/{wo['id']}", headers=tenant["headers"])
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert client.get(f"{tenant['base']}/work-orders/{wo['id']}", headers=tenant["headers"]).status_code == 404
    assert client.delete(f"{tenant['base']}/work-orders/{wo['id']}", headers=tenant["headers"]).status_code == 404


def test_cancelling_current_work_order_skips_cycle(client, tenant, create_pm):
    pm = create_pm(
        tenant,
        create_work_order_now=True,
        work_order_title="Monthly inspection",
        work_order_priority="medium",
    )

    response = client.put(
        f"{tenant['base']}/work-orders/{pm['work_orders'][0]['id']}",
        json={"status": "cancelled"},
        headers=tenant["headers"],
    )

    assert response.status_code == 200
    assert response.json()["completed_at"] is None
    pm_after = get_pm(client, tenant, pm["id"])
    assert pm_after["last_completed_date"] is None
    assert pm_after["next_due_date"] > date.today().isoformat()
    assert pm_after["status"] == "pending"


def test_create_work_order_as_completed_runs_completion(client, tenant, create_pm):
    today = date.today().isoformat()
    pm = create_pm(tenant, start_date=today, next_due_date=today)

    wo = create_work_order(client, tenant, preventive_maintenance_id=pm["id"], status="completed")

    assert wo["status"] == "completed"
    assert wo["completed_at"] is not None
    pm_after = get_pm(client, tenant, pm["id"])
    assert pm_after["last_completed_date"] == today
    assert pm_after["next_due_date"] > today


def test_failed_standalone_insert_leaves_no_placeholder(client, tenant, monkeypatch):
    def untitled_work_order(**fields):
        fields["title"] = None
        return WorkOrder(**fields)

    monkeypatch.setattr("cmms.services.work_orders.WorkOrder", untitled_work_order)

    response = client.post(f"{tenant['base']}/work-orders", json={"title": "Fix leak"}, headers=tenant["headers"])

    assert response.status_code == 500
    assert response.json()["detail"] == "Error creating work order"
    monkeypatch.undo()
    listing = client.get(f"{tenant['base']}/preventive-maintenance", headers=tenant["headers"]).json()
    assert listing["total"] == 0
    assert client.get(f"{tenant['base']}/work-orders", headers=tenant["headers"]).json()["total"] == 0
