from stockroom.services import reports


TRANSACTIONS = [
    {"timestamp": "2024-05-01T08:00:00.000Z", "itemCode": "A", "itemName": "Shirt (M)", "amount": 10, "type": "Added"},
    {"timestamp": "2024-05-01T09:00:00.000Z", "itemCode": "A", "itemName": "Shirt (M)", "amount": 4, "type": "Cut"},
    {
        "timestamp": "2024-05-02T10:00:00.000Z",
        "itemCode": "B",
        "itemName": "Hat (L)",
        "amount": -3,
        "delta": -3,
        "type": "Adjusted",
    },
    {
        "timestamp": "2024-05-02T11:00:00.000Z",
        "itemCode": "A",
        "itemName": "Shirt (S)",
        "amount": 2,
        "delta": 2,
        "type": "Adjusted",
    },
    {"timestamp": "2024-05-03T12:00:00.000Z", "itemCode": "C", "itemName": "Gone (M)", "amount": 1, "type": "Added"},
]

PRODUCTS = {"A": {"name": "Shirt"}, "B": {"name": "Hat"}}


def test_most_active_ranks_by_count_then_barcode():
    rows = reports.most_active(TRANSACTIONS, PRODUCTS)
    assert rows == [
        {"rank": 1, "barcode": "A", "name": "Shirt", "count": 3},
        {"rank": 2, "barcode": "B", "name": "Hat", "count": 1},
        {"rank": 3, "barcode": "C", "name": "Unknown (C)", "count": 1},
    ]
    assert [row["barcode"] for row in reports.most_active(TRANSACTIONS, PRODUCTS, limit=1)] == ["A"]


def test_daily_movement_splits_in_and_out():
    assert reports.daily_movement(TRANSACTIONS) == [
        {"date": "2024-05-01", "in": 10, "out": 4},
        {"date": "2024-05-02", "in": 2, "out": 3},
        {"date": "2024-05-03", "in": 1, "out": 0},
    ]


def test_inventory_value_uses_cell_costs():
    inventory = {
        "A": {"M": {"stock": 3, "cost": 2.5}, "S": {"stock": 1, "cost": 0.333}},
        "Z": {"L": {"stock": 2, "cost": 1}},
    }
    result = reports.inventory_value(inventory, PRODUCTS)

    assert result["totalUnits"] == 6
    assert result["totalValue"] == 9.83
    shirt, unknown = result["items"]
    assert shirt["units"] == 4
    assert [size["size"] for size in shirt["sizes"]] == ["M", "S"]
    assert shirt["sizes"][1]["value"] == 0.33
    assert unknown["name"] == "Unknown (Z)"


def test_item_history_filters_by_barcode_and_day():
    history = reports.item_history(TRANSACTIONS, "A")
    assert [entry["timestamp"][:10] for entry in history] == ["2024-05-02", "2024-05-01", "2024-05-01"]
    assert len(reports.item_history(TRANSACTIONS, "A", "2024-05-01")) == 2
    assert reports.item_history(TRANSACTIONS, "missing") == []
