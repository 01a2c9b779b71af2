"""Static checklist catalog for pre-trip inspections.

Modules are defined once at deploy time and never mutated at runtime.
Module keys are the lookup keys used by the risk policy's per-module
multipliers.
"""

from typing import Dict, List, Optional

from ..value_objects.checklist import ChecklistItem, ChecklistModule, FieldType, ItemCategory, Phase

_PF = FieldType.PASS_FAIL
_YN = FieldType.YES_NO
_TXT = FieldType.TEXT


def _item(label: str, field_type: FieldType, critical: bool, points: int, category: ItemCategory) -> ChecklistItem:
    return ChecklistItem(label=label, field_type=field_type, critical=critical, points=points, category=category)


DRIVER_INFO = ChecklistModule(
    key="DRIVER_INFO",
    name="Driver & Trip Information",
    step=1,
    items=(
        _item("Operator Name", _TXT, False, 0, ItemCategory.ADMINISTRATIVE),
        _item("Area of Operation", _TXT, False, 0, ItemCategory.ADMINISTRATIVE),
        _item("Driver Name", _TXT, True, 1, ItemCategory.DRIVER),
        _item("Driver ID", _TXT, True, 1, ItemCategory.DRIVER),
        _item("License Number", _TXT, True, 2, ItemCategory.DRIVER),
        _item("Vehicle ID / Plate", _TXT, True, 1, ItemCategory.ADMINISTRATIVE),
        _item("Vehicle Type", FieldType.SELECT, False, 0, ItemCategory.ADMINISTRATIVE),
        _item("Date of Trip", FieldType.DATE, True, 1, ItemCategory.ADMINISTRATIVE),
        _item("Route", _TXT, True, 1, ItemCategory.ADMINISTRATIVE),
        _item("Driving Hours", _TXT, False, 0, ItemCategory.DRIVER),
        _item("Rest Breaks", _TXT, False, 0, ItemCategory.DRIVER),
    ),
)

HEALTH_FITNESS = ChecklistModule(
    key="HEALTH_FITNESS",
    name="Health & Fitness",
    step=2,
    items=(
        _item("Alcohol Breath Test/Drugs", FieldType.PASS_FAIL_NA, True, 5, ItemCategory.DRIVER),
        _item("Temperature Check", _PF, True, 3, ItemCategory.DRIVER),
        _item("Vehicle Inspection Completed", _YN, True, 2, ItemCategory.VEHICLE),
        _item("Driver Fit for Duty Declaration", _YN, True, 3, ItemCategory.DRIVER),
        _item("Medication", _YN, False, 1, ItemCategory.DRIVER),
        _item("No health issues that may impair driving", _YN, True, 3, ItemCategory.DRIVER),
        _item("Fatigue checklist completed", _YN, True, 3, ItemCategory.DRIVER),
        _item("Weather and road condition checked", _YN, False, 1, ItemCategory.ADMINISTRATIVE),
    ),
)

DOCUMENTATION = ChecklistModule(
    key="DOCUMENTATION",
    name="Documentation & Compliance",
    step=3,
    items=(
        _item("Certificate of fitness", _YN, True, 3, ItemCategory.DOCUMENTATION),
        _item("Road Tax (valid)", _YN, True, 2, ItemCategory.DOCUMENTATION),
        _item("Insurance", _YN, True, 3, ItemCategory.DOCUMENTATION),
        _item("Trip authorization form completed and signed", _YN, True, 2, ItemCategory.DOCUMENTATION),
        _item("Logbook", _YN, True, 1, ItemCategory.DOCUMENTATION),
        _item("Driver Handbook", _YN, False, 1, ItemCategory.DOCUMENTATION),
        _item("Permits", _YN, True, 2, ItemCategory.DOCUMENTATION),
        _item("Emergency Contacts and risk mitigation plan communicated", _YN, True, 2, ItemCategory.DOCUMENTATION),
        _item("Personal Protective Equipment (PPE)", _YN, True, 2, ItemCategory.SAFETY_EQUIPMENT),
        _item("Emergency Procedures", _YN, True, 2, ItemCategory.DOCUMENTATION),
        _item("Safety briefing provided", _YN, True, 2, ItemCategory.DOCUMENTATION),
    ),
)

EXTERIOR_INSPECTION = ChecklistModule(
    key="EXTERIOR_INSPECTION",
    name="Exterior Inspection",
    step=4,
    items=(
        _item("Tires: Check for proper inflation, tread depth, and visible damage", _PF, True, 3, ItemCategory.VEHICLE),
        _item(
            "Lights: Ensure headlights, taillights, brake lights, turn signals, and hazard lights are operational",
            _PF, True, 4, ItemCategory.VEHICLE,
        ),
        _item("Mirrors: Verify mirrors are clean, properly adjusted, and free of damage", _PF, True, 2, ItemCategory.VEHICLE),
        _item(
            "Windshield: Check for cracks or chips; ensure wipers and washer fluid are functioning",
            _PF, True, 3, ItemCategory.VEHICLE,
        ),
        _item("Body Condition: Loose parts", _PF, False, 1, ItemCategory.VEHICLE),
        _item("Body Condition: Leaks", _PF, True, 2, ItemCategory.VEHICLE),
    ),
)

ENGINE_FLUIDS = ChecklistModule(
    key="ENGINE_FLUIDS",
    name="Engine & Fluids",
    step=5,
    items=(
        _item("Engine Oil: Check oil level and quality", _PF, True, 3, ItemCategory.MECHANICAL),
        _item("Coolant: Verify coolant levels and inspect for leaks", _PF, True, 3, ItemCategory.MECHANICAL),
        _item("Brake Fluid: Ensure brake fluid is at the proper level", _PF, True, 4, ItemCategory.MECHANICAL),
        _item("Transmission Fluid: Check level and condition", _PF, True, 2, ItemCategory.MECHANICAL),
        _item("Power Steering Fluid: Ensure it is at the correct level", _PF, True, 2, ItemCategory.MECHANICAL),
        _item("Battery: Inspect battery terminals and ensure the battery is secure", _PF, True, 2, ItemCategory.MECHANICAL),
    ),
)

INTERIOR_CABIN = ChecklistModule(
    key="INTERIOR_CABIN",
    name="Interior & Cabin",
    step=6,
    items=(
        _item("Dashboard Indicators: Ensure all warning lights are functioning properly", _PF, True, 2, ItemCategory.VEHICLE),
        _item("Seatbelts: Verify seatbelts are operational and free from wear or damage", _PF, True, 3, ItemCategory.VEHICLE),
        _item("Horn: Test the horn to ensure it is working", _PF, True, 2, ItemCategory.VEHICLE),
        _item("Fire Extinguisher", _PF, True, 3, ItemCategory.SAFETY_EQUIPMENT),
        _item("First Aid Kit", _PF, True, 2, ItemCategory.SAFETY_EQUIPMENT),
        _item("Safety Triangles", _PF, True, 2, ItemCategory.SAFETY_EQUIPMENT),
    ),
)

FUNCTIONAL_CHECKS = ChecklistModule(
    key="FUNCTIONAL_CHECKS",
    name="Functional Checks",
    step=7,
    items=(
        _item("Brakes: Test brake function for responsiveness and effectiveness", _PF, True, 5, ItemCategory.MECHANICAL),
        _item("Suspension: Check for any unusual noises or handling issues", _PF, True, 2, ItemCategory.MECHANICAL),
        _item("Heating and Air Conditioning: Test to ensure both systems are operational", _PF, False, 1, ItemCategory.VEHICLE),
    ),
)

SAFETY_EQUIPMENT = ChecklistModule(
    key="SAFETY_EQUIPMENT",
    name="Safety Equipment",
    step=8,
    items=(
        _item("Fire extinguisher (charged & tagged)", _PF, True, 3, ItemCategory.SAFETY_EQUIPMENT),
        _item("First aid kit (stock verified)", _PF, True, 2, ItemCategory.SAFETY_EQUIPMENT),
        _item("Reflective triangles (2)", _PF, True, 2, ItemCategory.SAFETY_EQUIPMENT),
        _item("Wheel chocks", _PF, False, 1, ItemCategory.SAFETY_EQUIPMENT),
        _item("Spare tyre and jack", _PF, True, 2, ItemCategory.SAFETY_EQUIPMENT),
        _item("Torch / flashlight", _PF, False, 1, ItemCategory.SAFETY_EQUIPMENT),
        _item("GPS tracker operational", _PF, False, 1, ItemCategory.VEHICLE),
    ),
)

FINAL_VERIFICATION = ChecklistModule(
    key="FINAL_VERIFICATION",
    name="Final Verification",
    step=9,
    items=(
        _item("All critical defects rectified before departure?", _YN, True, 5, ItemCategory.VEHICLE),
        _item("Driver briefed on trip hazards and route plan?", _YN, True, 3, ItemCategory.DRIVER),
        _item("Vehicle safe and ready for dispatch?", _YN, True, 5, ItemCategory.VEHICLE),
    ),
)

RISK_SCORING = ChecklistModule(
    key="RISK_SCORING",
    name="Risk Scoring",
    step=10,
    items=(
        _item("Speeding in School Zone", FieldType.NUMBER, True, 5, ItemCategory.VIOLATION),
        _item("Speeding on Hazardous Bridge", FieldType.NUMBER, True, 3, ItemCategory.VIOLATION),
        _item("Other Violations", FieldType.NUMBER, False, 0, ItemCategory.VIOLATION),
    ),
)

SIGN_OFF = ChecklistModule(
    key="SIGN_OFF",
    name="Final Sign-Off",
    step=11,
    items=(
        _item("Driver Signature", FieldType.SIGNATURE, True, 0, ItemCategory.ADMINISTRATIVE),
        _item("Supervisor Signature", FieldType.SIGNATURE, True, 0, ItemCategory.ADMINISTRATIVE),
        _item("Mechanic Signature (if repairs done)", FieldType.SIGNATURE, False, 0, ItemCategory.ADMINISTRATIVE),
    ),
)


class ChecklistCatalog:
    """Read-only registry of checklist modules ordered by step."""

    def __init__(self, modules: List[ChecklistModule]):
        """Initialize catalog, rejecting duplicate keys or steps."""
        keys = [module.key for module in modules]
        if len(keys) != len(set(keys)):
            raise ValueError("Duplicate module keys in checklist catalog")
        steps = [module.step for module in modules]
        if len(steps) != len(set(steps)):
            raise ValueError("Duplicate module steps in checklist catalog")

        self._modules: Dict[str, ChecklistModule] = {
            module.key: module for module in sorted(modules, key=lambda m: m.step)
        }

    @property
    def modules(self) -> List[ChecklistModule]:
        """Get all modules in step order."""
        return list(self._modules.values())

    def get(self, key: str) -> Optional[ChecklistModule]:
        """Get a module by key."""
        return self._modules.get(key)

    def find_by_name(self, name: str) -> Optional[ChecklistModule]:
        """Find a module by its display name."""
        for module in self._modules.values():
            if module.name == name:
                return module
        return None

    def find_item(self, label: str) -> Optional[ChecklistItem]:
        """Find an item definition anywhere in the catalog."""
        for module in self._modules.values():
            item = module.get_item(label)
            if item is not None:
                return item
        return None

    def __len__(self) -> int:
        return len(self._modules)


DEFAULT_CATALOG = ChecklistCatalog([
    DRIVER_INFO,
    HEALTH_FITNESS,
    DOCUMENTATION,
    EXTERIOR_INSPECTION,
    ENGINE_FLUIDS,
    INTERIOR_CABIN,
    FUNCTIONAL_CHECKS,
    SAFETY_EQUIPMENT,
    FINAL_VERIFICATION,
    RISK_SCORING,
    SIGN_OFF,
])
