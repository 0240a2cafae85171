import unittest


class ResolveTests(unittest.TestCase):
    def _mappings(self):
        from incident_sync.services.entities import DataMapping

        return [
            DataMapping(1, "17", project_id=1, is_primary=True),
            DataMapping(2, "high", project_id=1, is_primary=True),
            DataMapping(3, "17", project_id=1, is_primary=False),
            DataMapping(4, "17", project_id=2, is_primary=True),
        ]

    def test_to_external_parses_numeric_key(self):
        from incident_sync.services.field_translator import Direction, Found, resolve

        result = resolve(Direction.TO_EXTERNAL, self._mappings(), 1, project_id=1)

        self.assertIsInstance(result, Found)
        self.assertEqual(result.value, 17)
        self.assertEqual(result.mapping.internal_id, 1)

    def test_to_external_reports_non_numeric_key(self):
        from incident_sync.services.field_translator import Direction, NotNumeric, resolve

        result = resolve(Direction.TO_EXTERNAL, self._mappings(), 2, project_id=1)

        self.assertIsInstance(result, NotNumeric)
        self.assertEqual(result.raw, "high")

    def test_to_external_ignores_primary_flag(self):
        from incident_sync.services.field_translator import Found, to_external

        self.assertEqual(to_external(self._mappings(), 3, 1), Found(17, self._mappings()[2]))

    def test_to_external_missing(self):
        from incident_sync.services.field_translator import NOT_FOUND, to_external

        self.assertEqual(to_external(self._mappings(), 99, 1), NOT_FOUND)
        self.assertEqual(to_external(self._mappings(), 4, 1), NOT_FOUND)

    def test_to_internal_uses_primary_rows_of_project(self):
        from incident_sync.services.field_translator import Found, to_internal

        self.assertEqual(to_internal(self._mappings(), "17", 1).value, 1)
        self.assertEqual(to_internal(self._mappings(), "17", 2).value, 4)
        self.assertIsInstance(to_internal(self._mappings(), 17, 1), Found)

    def test_to_internal_can_include_secondary_rows(self):
        from incident_sync.services.entities import DataMapping
        from incident_sync.services.field_translator import NOT_FOUND, to_internal

        mappings = [DataMapping(5, "50")]

        self.assertEqual(to_internal(mappings, "50"), NOT_FOUND)
        self.assertEqual(to_internal(mappings, "50", primary_only=False).value, 5)

    def test_global_table_lookup_without_project(self):
        from incident_sync.services.field_translator import find_mapping_by_internal_id

        mapping = find_mapping_by_internal_id(self._mappings(), 4)

        self.assertEqual(mapping.project_id, 2)

    def test_parse_external_id(self):
        from incident_sync.services.field_translator import Found, NotNumeric, parse_external_id

        self.assertEqual(parse_external_id(" 12 "), Found(12))
        self.assertEqual(parse_external_id("Closed"), NotNumeric("Closed"))
        self.assertEqual(parse_external_id(None), NotNumeric(""))


class SpecialFieldTests(unittest.TestCase):
    def test_special_field_requires_matching_property_type(self):
        from incident_sync.constants import CustomPropertyType
        from incident_sync.services.field_translator import special_field_for

        self.assertEqual(special_field_for("Area", CustomPropertyType.LIST).case_attribute, "area")
        self.assertEqual(special_field_for("Version", CustomPropertyType.TEXT).case_attribute, "version")
        self.assertEqual(special_field_for("Computer", CustomPropertyType.TEXT).case_attribute, "computer")
        self.assertIsNone(special_field_for("Area", CustomPropertyType.TEXT))
        self.assertIsNone(special_field_for("Browser", CustomPropertyType.TEXT))
        self.assertIsNone(special_field_for(None, CustomPropertyType.TEXT))


class CustomSlotTests(unittest.TestCase):
    def test_slot_names_round_trip(self):
        from incident_sync.constants import CustomPropertyType
        from incident_sync.services.field_translator import slot_for_name, slot_name

        self.assertEqual(slot_for_name("TEXT_01"), (CustomPropertyType.TEXT, 0))
        self.assertEqual(slot_for_name("LIST_10"), (CustomPropertyType.LIST, 9))
        self.assertEqual(slot_name(CustomPropertyType.LIST, 2), "LIST_03")

    def test_invalid_slot_names(self):
        from incident_sync.services.field_translator import slot_for_name

        for name in ("TEXT_00", "TEXT_11", "TEXT_1", "NUMBER_01", "", None):
            self.assertIsNone(slot_for_name(name), name)

    def test_get_and_set_custom_values(self):
        from incident_sync.services.entities import CustomPropertySlots
        from incident_sync.services.field_translator import get_custom_value, set_custom_value

        slots = CustomPropertySlots()

        self.assertTrue(set_custom_value(slots, "TEXT_03", "abc"))
        self.assertTrue(set_custom_value(slots, "LIST_01", 11))
        self.assertFalse(set_custom_value(slots, "TEXT_42", "x"))

        self.assertEqual(slots.text[2], "abc")
        self.assertEqual(slots.list[0], 11)
        self.assertEqual(get_custom_value(slots, "TEXT_03"), "abc")
        self.assertIsNone(get_custom_value(slots, "LIST_02"))
        self.assertIsNone(get_custom_value(slots, "bogus"))


if __name__ == "__main__":
    unittest.main()
