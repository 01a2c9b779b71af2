"""Unit tests for the checklist catalog and checklist value objects."""

import pytest

from src.fleet_safety.domain.catalog.checklist_catalog import (
    DEFAULT_CATALOG,
    HEALTH_FITNESS,
    RISK_SCORING,
    ChecklistCatalog,
)
from src.fleet_safety.domain.value_objects.checklist import (
    ChecklistItem,
    ChecklistModule,
    FieldType,
    ItemCategory,
    ModuleAnswer,
)


class TestChecklistCatalog:
    """Test cases for ChecklistCatalog."""

    def test_default_catalog_is_ordered_by_step(self):
        """Test modules are returned in step order."""
        steps = [module.step for module in DEFAULT_CATALOG.modules]

        assert steps == sorted(steps)
        assert len(DEFAULT_CATALOG) == 11
        assert DEFAULT_CATALOG.modules[0].key == "DRIVER_INFO"
        assert DEFAULT_CATALOG.modules[-1].key == "SIGN_OFF"

    def test_lookup_by_key_and_name(self):
        """Test module lookup by key and display name."""
        assert DEFAULT_CATALOG.get("HEALTH_FITNESS") is HEALTH_FITNESS
        assert DEFAULT_CATALOG.find_by_name("Risk Scoring") is RISK_SCORING
        assert DEFAULT_CATALOG.get("UNKNOWN") is None

    def test_find_item_across_modules(self):
        """Test item lookup over the whole catalog."""
        item = DEFAULT_CATALOG.find_item("Alcohol Breath Test/Drugs")

        assert item is not None
        assert item.critical is True
        assert item.field_type == FieldType.PASS_FAIL_NA
        assert DEFAULT_CATALOG.find_item("Not a question") is None

    def test_duplicate_keys_rejected(self):
        """Test catalog rejects duplicate module keys."""
        clone = ChecklistModule(key=HEALTH_FITNESS.key, name="Copy", step=99, items=())

        with pytest.raises(ValueError, match="Duplicate module keys"):
            ChecklistCatalog([HEALTH_FITNESS, clone])

    def test_duplicate_steps_rejected(self):
        """Test catalog rejects duplicate module steps."""
        clone = ChecklistModule(key="OTHER", name="Copy", step=HEALTH_FITNESS.step, items=())

        with pytest.raises(ValueError, match="Duplicate module steps"):
            ChecklistCatalog([HEALTH_FITNESS, clone])


class TestChecklistItem:
    """Test cases for ChecklistItem validation."""

    def test_empty_label_rejected(self):
        """Test items need a label."""
        with pytest.raises(ValueError, match="label cannot be empty"):
            ChecklistItem(label="  ", field_type=FieldType.YES_NO)

    def test_negative_points_rejected(self):
        """Test items cannot carry negative points."""
        with pytest.raises(ValueError, match="cannot be negative"):
            ChecklistItem(label="Horn", field_type=FieldType.PASS_FAIL, points=-1)

    def test_category_drives_mechanic_review(self):
        """Test only vehicle and mechanical categories need a mechanic."""
        assert ItemCategory.VEHICLE.requires_mechanic_review is True
        assert ItemCategory.MECHANICAL.requires_mechanic_review is True
        assert ItemCategory.DRIVER.requires_mechanic_review is False


class TestModuleAnswer:
    """Test cases for ModuleAnswer failure detection."""

    @pytest.mark.parametrize("field_type,value,expected", [
        (FieldType.PASS_FAIL, "fail", True),
        (FieldType.PASS_FAIL, "Fail ", True),
        (FieldType.PASS_FAIL, "pass", False),
        (FieldType.PASS_FAIL_NA, "fail", True),
        (FieldType.PASS_FAIL_NA, "n/a", False),
        (FieldType.YES_NO, "no", True),
        (FieldType.YES_NO, "yes", False),
        (FieldType.NUMBER, 2, True),
        (FieldType.NUMBER, 0, False),
        (FieldType.NUMBER, "abc", False),
        (FieldType.TEXT, "fail", False),
        (FieldType.SIGNATURE, None, False),
    ])
    def test_indicates_failure(self, field_type, value, expected):
        """Test failure detection per field type."""
        item = ChecklistItem(label="Item", field_type=field_type, critical=True, points=1)

        assert ModuleAnswer(item=item, value=value).indicates_failure is expected

    def test_numeric_value_treats_garbage_as_zero(self):
        """Test numeric coercion of violation counts."""
        item = ChecklistItem(label="Count", field_type=FieldType.NUMBER)

        assert ModuleAnswer(item=item, value="3").numeric_value == 3.0
        assert ModuleAnswer(item=item, value=None).numeric_value == 0.0
        assert ModuleAnswer(item=item, value=True).numeric_value == 0.0
        assert ModuleAnswer(item=item, value="x").numeric_value == 0.0

    def test_revise_links_to_previous_answer(self):
        """Test revisions keep the audit chain."""
        item = ChecklistItem(label="Horn", field_type=FieldType.PASS_FAIL)
        original = ModuleAnswer(item=item, value="fail")

        revised = original.revise("pass")

        assert revised.supersedes == original.answer_id
        assert revised.answer_id != original.answer_id
        assert revised.value == "pass"
        assert original.value == "fail"
