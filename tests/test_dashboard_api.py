from datetime import date


def add_expense(client, headers, **fields):
    payload = {"title": "Item", "amount": 10, "category": "Others", "date": "2023-01-01"}
    payload.update(fields)
    response = client.post("/api/expenses/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_summary_for_year(client, auth_headers):
    add_expense(client, auth_headers, date="2023-01-05", amount=20)
    add_expense(client, auth_headers, date="2023-01-25", amount=30)
    add_expense(client, auth_headers, date="2023-04-01", amount=5)
    add_expense(client, auth_headers, date="2022-12-31", amount=99)

    body = client.get("/api/dashboard/summary?year=2023", headers=auth_headers).json()

    assert body["year"] == 2023
    assert body["monthly_totals"] == [
        {"month": 1, "total": 50.0, "count": 2},
        {"month": 4, "total": 5.0, "count": 1},
    ]
    assert len(body["recent_expenses"]) == 4
    assert body["recent_expenses"][0]["date"] == "2023-04-01"
    assert "user_id" not in body["recent_expenses"][0]


def test_summary_current_month(client, auth_headers):
    today = date.today().isoformat()
    add_expense(client, auth_headers, date=today, amount=40, category="Food")
    add_expense(client, auth_headers, date=today, amount=60, category="Rent")
    add_expense(client, auth_headers, date="2020-01-01", amount=1000, category="Rent")

    body = client.get("/api/dashboard/summary", headers=auth_headers).json()

    assert body["year"] == date.today().year
    assert body["current_month_total"] == 100
    assert [c["category"] for c in body["category_breakdown"]] == ["Rent", "Food"]
    assert sum(w["total"] for w in body["weekly_breakdown"]) == 100


def test_summary_limits_recent_expenses(client, auth_headers):
    for day in range(1, 13):
        add_expense(client, auth_headers, date=f"2023-02-{day:02d}")

    body = client.get("/api/dashboard/summary?year=2023", headers=auth_headers).json()
    assert len(body["recent_expenses"]) == 10
    assert body["recent_expenses"][0]["date"] == "2023-02-12"


def test_export_csv(client, auth_headers):
    add_expense(
        client,
        auth_headers,
        date="2024-03-01",
        title="Rent",
        category="Rent",
        amount=500,
        description='He said "hi"',
    )

    response = client.get("/api/dashboard/export", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == "attachment; filename=expenses.csv"
    assert response.text == 'Date,Title,Category,Amount,Description\n3/1/2024,"Rent",Rent,500,"He said ""hi"""'


def test_export_date_range(client, auth_headers, other_headers):
    add_expense(client, auth_headers, date="2024-01-01", title="Old")
    add_expense(client, auth_headers, date="2024-02-01", title="Kept")
    add_expense(client, other_headers, date="2024-02-01", title="Someone else")

    response = client.get(
        "/api/dashboard/export?start_date=2024-01-15&end_date=2024-02-28", headers=auth_headers
    )
    lines = response.text.split("\n")

    assert lines[1:] == ['2/1/2024,"Kept",Others,10,']
