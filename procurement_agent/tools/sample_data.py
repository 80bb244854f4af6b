"""
Seed records for the in-memory back-office used by ``--backend memory``.
"""

SAMPLE_SUPPLIERS = [
    {"id": "SUP-001", "name": "Shanghai Steel Works", "region": "Asia", "category": "Construction",
     "material": "Construction Steel", "rating": 4.8, "lead_time": "2 weeks",
     "contact": "sales@shanghaisteel.example"},
    {"id": "SUP-002", "name": "Osaka Metal Industries", "region": "Asia", "category": "Manufacturing",
     "material": "Steel Components", "rating": 4.6, "lead_time": "10 days",
     "contact": "orders@osakametal.example"},
    {"id": "SUP-003", "name": "Mumbai Structural Supply", "region": "Asia", "category": "Construction",
     "material": "Construction Steel", "rating": 4.1, "lead_time": "3 weeks",
     "contact": "rfq@mumbaistructural.example"},
    {"id": "SUP-004", "name": "Rhine Steel GmbH", "region": "Europe", "category": "Construction",
     "material": "Construction Steel", "rating": 4.7, "lead_time": "2 weeks",
     "contact": "vertrieb@rhinesteel.example"},
    {"id": "SUP-005", "name": "Nordic Fasteners AB", "region": "Europe", "category": "Manufacturing",
     "material": "Industrial Fasteners", "rating": 4.3, "lead_time": "1 week",
     "contact": "info@nordicfasteners.example"},
    {"id": "SUP-006", "name": "TechNetworks Ltd", "region": "Asia", "category": "Electronics",
     "material": "Connectors", "rating": 4.5, "lead_time": "5 days",
     "contact": "sales@technetworks.example"},
    {"id": "SUP-007", "name": "Shenzhen Circuit Co", "region": "Asia", "category": "Electronics",
     "material": "Electronic Components", "rating": 4.4, "lead_time": "1 week",
     "contact": "b2b@shenzhencircuit.example"},
    {"id": "SUP-008", "name": "Andes Cement Corp", "region": "Americas", "category": "Construction",
     "material": "Cement Mix", "rating": 3.9, "lead_time": "2 weeks",
     "contact": "ventas@andescement.example"},
    {"id": "SUP-009", "name": "Lagos Brickworks", "region": "Africa", "category": "Construction",
     "material": "Bricks", "rating": 3.8, "lead_time": "3 weeks",
     "contact": "hello@lagosbrick.example"},
    {"id": "SUP-010", "name": "Pacific Pallet Co", "region": "Oceania", "category": "Logistics",
     "material": "Pallets", "rating": 4.2, "lead_time": "1 week",
     "contact": "orders@pacificpallet.example"},
    {"id": "SUP-011", "name": "Rotterdam Container Lines", "region": "Europe", "category": "Logistics",
     "material": "Containers", "rating": 4.0, "lead_time": "4 weeks",
     "contact": "fleet@rotterdamcl.example"},
    {"id": "SUP-012", "name": "Detroit Plastics Inc", "region": "Americas", "category": "Manufacturing",
     "material": "Plastic Molding", "rating": 4.1, "lead_time": "2 weeks",
     "contact": "quotes@detroitplastics.example"},
    {"id": "SUP-013", "name": "Cable Masters Inc", "region": "Americas", "category": "Electronics",
     "material": "Cables", "rating": 3.7, "lead_time": "10 days",
     "contact": "support@cablemasters.example"},
]

SAMPLE_INVENTORY = [
    {"name": "Steel Beam", "category": "Construction", "supplier": "Shanghai Steel Works",
     "stock_status": "In Stock", "quantity": 120, "unit_price": 89.5},
    {"name": "Cement Bag", "category": "Construction", "supplier": "Andes Cement Corp",
     "stock_status": "Low Stock", "quantity": 15, "unit_price": 12.3},
    {"name": "Red Clay Bricks", "category": "Construction", "supplier": "Lagos Brickworks",
     "stock_status": "In Stock", "quantity": 5000, "unit_price": 0.85},
    {"name": "USB Hub", "category": "Electronics", "supplier": "TechNetworks Ltd",
     "stock_status": "Low Stock", "quantity": 8, "unit_price": 35.0},
    {"name": "Power Supply Unit", "category": "Electronics", "supplier": "Shenzhen Circuit Co",
     "stock_status": "In Stock", "quantity": 40, "unit_price": 125.0},
    {"name": "Wooden Pallet", "category": "Logistics", "supplier": "Pacific Pallet Co",
     "stock_status": "In Stock", "quantity": 300, "unit_price": 25.0},
    {"name": "Plastic Mold Case", "category": "Manufacturing", "supplier": "Detroit Plastics Inc",
     "stock_status": "Out of Stock", "quantity": 0, "unit_price": 45.7},
]
