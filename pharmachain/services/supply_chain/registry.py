"""
Domain Registry

Static reference data for the simulated pharmaceutical network:
drug catalog, stakeholders, the location graph, batch sizes by dosage
form and the sensor catalog. Read-only.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Drug:
    """Drug catalog entry."""
    id: str
    name: str
    ndc_code: str
    dosage_form: str
    strength: str


@dataclass(frozen=True)
class Stakeholder:
    """Named party in the chain of custody."""
    id: str
    name: str
    stakeholder_type: str  # manufacturer, distributor, pharmacy, warehouse, regulatory


@dataclass(frozen=True)
class SensorProfile:
    """Stochastic model parameters for one sensor."""
    sensor_id: str
    name: str
    sensor_type: str
    unit: str
    min_value: float
    max_value: float
    change_rate: float
    location: str


DRUGS: Tuple[Drug, ...] = (
    Drug("d1", "Paracetamol 500mg", "0573-0150-20", "Tablet", "500mg"),
    Drug("d2", "Amoxicillin 250mg", "0093-3107-01", "Capsule", "250mg"),
    Drug("d3", "Insulin Glargine", "0088-2220-33", "Injectable", "100 units/mL"),
    Drug("d4", "Azithromycin Suspension", "0069-3120-19", "Liquid", "200mg/5mL"),
    Drug("d5", "Metformin 850mg", "0378-0234-01", "Tablet", "850mg"),
)

MANUFACTURER = "PharmaCorp Manufacturing"
DISTRIBUTOR = "MedSupply Distributors"
REGULATOR = "FDA Regulatory Authority"
CURRENT_HOLDER = "Current Holder"

STAKEHOLDERS: Tuple[Stakeholder, ...] = (
    Stakeholder("1", MANUFACTURER, "manufacturer"),
    Stakeholder("2", DISTRIBUTOR, "distributor"),
    Stakeholder("3", "HealthPlus Pharmacy", "pharmacy"),
    Stakeholder("4", "CentralMed Warehouse", "warehouse"),
    Stakeholder("5", "Regional Distribution Center", "distributor"),
    Stakeholder("6", REGULATOR, "regulatory"),
)

DEFAULT_LOCATION = "Mumbai, India"

# Directed: a transfer from a city can only reach its listed neighbours.
LOCATION_GRAPH: Dict[str, Tuple[str, ...]] = {
    "Mumbai, India": ("Delhi, India", "Bangalore, India"),
    "Delhi, India": ("Mumbai, India", "Kolkata, India"),
    "Bangalore, India": ("Chennai, India", "Mumbai, India"),
    "Chennai, India": ("Bangalore, India", "Hyderabad, India"),
    "Kolkata, India": ("Delhi, India", "Hyderabad, India"),
    "Hyderabad, India": ("Chennai, India", "Bangalore, India"),
}

BATCH_SIZES: Dict[str, int] = {
    "Tablet": 100000,
    "Capsule": 50000,
    "Injectable": 10000,
    "Liquid": 20000,
}
DEFAULT_BATCH_SIZE = 10000

SENSORS: Dict[str, SensorProfile] = {
    "s1": SensorProfile("s1", "Temperature Sensor #1", "temperature", "°C", 2, 8, 0.2, "Storage Unit A"),
    "s2": SensorProfile("s2", "Humidity Sensor #1", "humidity", "%", 35, 65, 1, "Storage Unit A"),
    "s3": SensorProfile("s3", "Shock Sensor #1", "shock", "g", 0, 2, 0.5, "Transport Vehicle TV-101"),
    "s4": SensorProfile("s4", "GPS Tracker #1", "location", "", 0, 0, 0, "Transport Vehicle TV-101"),
}


def find_drug(name: str) -> Optional[Drug]:
    for drug in DRUGS:
        if drug.name == name:
            return drug
    return None


def batch_size_for(dosage_form: str) -> int:
    return BATCH_SIZES.get(dosage_form, DEFAULT_BATCH_SIZE)


def neighbours(location: str) -> Tuple[str, ...]:
    return LOCATION_GRAPH.get(location, ())


def stakeholder_names() -> List[str]:
    return [s.name for s in STAKEHOLDERS]


def locations() -> List[str]:
    return list(LOCATION_GRAPH)
