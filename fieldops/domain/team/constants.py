"""Catalogue of common trade skills and certifications offered to the team editor"""

SKILL_CATEGORIES = {
    "HVAC": "hvac",
    "PLUMBING": "plumbing",
    "ELECTRICAL": "electrical",
    "APPLIANCE": "appliance",
    "GENERAL": "general",
}

COMMON_SKILLS = {
    "hvac": [
        {"id": "hvac_install", "name": "HVAC Installation", "level": "advanced"},
        {"id": "hvac_repair", "name": "HVAC Repair", "level": "intermediate"},
        {"id": "hvac_maintenance", "name": "HVAC Maintenance", "level": "basic"},
        {"id": "ductwork", "name": "Ductwork", "level": "intermediate"},
        {"id": "refrigerant", "name": "Refrigerant Handling", "level": "advanced"},
        {"id": "heat_pump", "name": "Heat Pump Systems", "level": "advanced"},
        {"id": "mini_split", "name": "Mini-Split Installation", "level": "intermediate"},
    ],
    "plumbing": [
        {"id": "plumbing_repair", "name": "Plumbing Repair", "level": "intermediate"},
        {"id": "water_heater", "name": "Water Heater Install/Repair", "level": "intermediate"},
        {"id": "drain_cleaning", "name": "Drain Cleaning", "level": "basic"},
        {"id": "pipe_replacement", "name": "Pipe Replacement", "level": "advanced"},
        {"id": "gas_lines", "name": "Gas Line Work", "level": "advanced"},
    ],
    "electrical": [
        {"id": "electrical_repair", "name": "Electrical Repair", "level": "intermediate"},
        {"id": "panel_work", "name": "Panel Upgrades", "level": "advanced"},
        {"id": "wiring", "name": "Wiring", "level": "intermediate"},
        {"id": "ev_charger", "name": "EV Charger Installation", "level": "advanced"},
    ],
    "appliance": [
        {"id": "appliance_repair", "name": "Appliance Repair", "level": "intermediate"},
        {"id": "appliance_install", "name": "Appliance Installation", "level": "basic"},
    ],
    "general": [
        {"id": "diagnostics", "name": "Diagnostics", "level": "intermediate"},
        {"id": "customer_service", "name": "Customer Service", "level": "basic"},
        {"id": "training", "name": "Can Train Others", "level": "advanced"},
    ],
}

COMMON_CERTIFICATIONS = [
    {"id": "epa_608", "name": "EPA 608 Certification", "category": "hvac", "required": True},
    {"id": "nate", "name": "NATE Certified", "category": "hvac", "required": False},
    {"id": "epa_608_universal", "name": "EPA 608 Universal", "category": "hvac", "required": False},
    {"id": "r410a", "name": "R-410A Certified", "category": "hvac", "required": False},
    {
        "id": "journeyman_plumber",
        "name": "Journeyman Plumber License",
        "category": "plumbing",
        "required": True,
    },
    {"id": "master_plumber", "name": "Master Plumber License", "category": "plumbing", "required": False},
    {
        "id": "journeyman_electrician",
        "name": "Journeyman Electrician License",
        "category": "electrical",
        "required": True,
    },
    {
        "id": "master_electrician",
        "name": "Master Electrician License",
        "category": "electrical",
        "required": False,
    },
    {"id": "osha_10", "name": "OSHA 10", "category": "general", "required": False},
    {"id": "osha_30", "name": "OSHA 30", "category": "general", "required": False},
    {"id": "cpr_first_aid", "name": "CPR/First Aid", "category": "general", "required": False},
]
