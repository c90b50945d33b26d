"""Demo customers, products and invoices, shaped like API responses."""

DEMO_CUSTOMERS = [
    {
        "id": 1,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address": "12 St James's Square",
        "zip_code": "SW1Y 4JH",
        "city": "London",
        "country": "United Kingdom",
        "country_code": "GB",
    },
    {
        "id": 2,
        "first_name": "Émile",
        "last_name": "Baudot",
        "address": "4 rue de Grenelle",
        "zip_code": "75007",
        "city": "Paris",
        "country": "France",
        "country_code": "FR",
    },
]

DEMO_PRODUCTS = [
    {"id": 10, "label": "Consulting day", "unit": "day", "vat_rate": "20", "unit_price_without_tax": "650.00"},
    {"id": 11, "label": "Support hour", "unit": "hour", "vat_rate": "20", "unit_price_without_tax": "85.50"},
    {"id": 12, "label": "Printed manual", "unit": "piece", "vat_rate": "5.5", "unit_price_without_tax": "19.99"},
    {"id": 13, "label": "Training seat", "unit": "piece", "vat_rate": "10", "unit_price_without_tax": "240.00"},
    {"id": 14, "label": "Export licence", "unit": "piece", "vat_rate": "0", "unit_price_without_tax": "1200.00"},
]

DEMO_INVOICES = [
    {
        "id": 100,
        "customer_id": 1,
        "date": "2024-01-15",
        "deadline": "2024-02-14",
        "finalized": True,
        "paid": True,
        "invoice_lines": [
            {"id": 1000, "product_id": 10, "quantity": 3},
            {"id": 1001, "product_id": 12, "quantity": 5},
        ],
    },
    {
        "id": 101,
        "customer_id": 2,
        "date": "2024-03-02",
        "deadline": "2024-04-01",
        "finalized": False,
        "paid": False,
        "invoice_lines": [
            {"id": 1002, "product_id": 11, "quantity": 7.5},
        ],
    },
    {
        "id": 102,
        "customer_id": 1,
        "date": "2024-03-20",
        "deadline": None,
        "finalized": False,
        "paid": False,
        "invoice_lines": [
            {"id": 1003, "product_id": 13, "quantity": 2},
            {"id": 1004, "product_id": 14, "quantity": 1},
        ],
    },
]
