"""
config/devices.py
─────────────────
Sensor devices seeded into the directory on first run.
"""

DEVICE_CONFIG: dict[str, dict] = {
    "RPi001": {
        "id": "RPi001",
        "name": "Raspberry Pi Sensor 001",
        "location": "Treatment Plant 1 - Primary Tank",
        "type": "Standard Sensor",
        "status": "online",
        "serial_number": "RPI-001-2022",
        "installation_date": "2022-10-01",
        "last_maintenance": "2023-05-15",
        "variation": 1.0,   # simulator scale factor
    },
    "RPi002": {
        "id": "RPi002",
        "name": "Raspberry Pi Sensor 002",
        "location": "Treatment Plant 1 - Secondary Tank",
        "type": "Standard Sensor",
        "status": "online",
        "serial_number": "RPI-002-2023",
        "installation_date": "2023-01-15",
        "last_maintenance": "2023-06-20",
        "variation": 1.1,
    },
}
