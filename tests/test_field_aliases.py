"""
Tests for mapping extraction payloads onto the add-policy form.

These tests verify:
1. Every alias of a field lands in the same form field
2. The first non-empty alias wins
3. Wrapped responses are unwrapped
4. Nested sections override flat values only when non-empty
5. Product types are normalised by keyword
"""

import pytest

from policy_desk.services.field_aliases import (
    FIELD_ALIASES,
    map_extracted_fields,
    normalize_product_type,
    resolve_field,
    unwrap_payload,
)


class TestAliasResolution:
    """Tests for flat alias lookup."""

    @pytest.mark.parametrize("key", ["policyholderName", "customer_name", "insured", "INSURED NAME"])
    def test_policyholder_aliases_are_equivalent(self, key: str):
        """Any alias of the policyholder should fill the same field."""
        form = map_extracted_fields({key: "  Kiran Rao "})
        assert form.policyholder_name == "Kiran Rao"

    @pytest.mark.parametrize("key", ["policyNumber", "policy_no", "certificate_number", "UIN No"])
    def test_policy_number_aliases_are_equivalent(self, key: str):
        form = map_extracted_fields({key: "OG-24-1901-1801-00004567"})
        assert form.policy_number == "OG-24-1901-1801-00004567"

    def test_first_non_empty_alias_wins(self):
        """Earlier aliases take precedence, but blanks are passed over."""
        payload = {"policyholderName": "   ", "policyholder_name": "", "name": "Asha", "customer": "Other"}
        assert resolve_field(payload, FIELD_ALIASES["policyholder_name"]) == "Asha"

    def test_numbers_are_rendered_as_text(self):
        form = map_extracted_fields({"premium": 12500, "idv": 450000.5})
        assert form.premium_amount == "12500"
        assert form.idv == "450000.5"

    def test_non_scalar_values_are_ignored(self):
        form = map_extracted_fields({"name": {"first": "Asha"}, "customer_name": "Asha K"})
        assert form.policyholder_name == "Asha K"

    def test_booleans_are_ignored(self):
        form = map_extracted_fields({"remarks": True})
        assert form.remark == ""

    def test_file_name_is_carried(self):
        form = map_extracted_fields({}, file_name="policy.pdf")
        assert form.pdf_file_name == "policy.pdf"
        assert not form.has_data()


class TestUnwrap:
    """Tests for finding the field dict inside a webhook response."""

    def test_list_with_output(self):
        assert unwrap_payload([{"output": {"name": "A"}}]) == {"name": "A"}

    def test_output_object(self):
        assert unwrap_payload({"output": {"name": "A"}}) == {"name": "A"}

    def test_data_object(self):
        assert unwrap_payload({"data": {"name": "A"}}) == {"name": "A"}

    def test_bare_object(self):
        assert unwrap_payload({"name": "A"}) == {"name": "A"}

    def test_bare_list_item(self):
        assert unwrap_payload([{"name": "A"}]) == {"name": "A"}

    @pytest.mark.parametrize("raw", [[], ["text"], "text", 42, None])
    def test_unusable_shapes(self, raw):
        assert unwrap_payload(raw) is None


class TestNestedSections:
    """Tests for vehicle, policy and premium detail sections."""

    def test_nested_value_overrides_flat(self):
        payload = {
            "registration_no": "KA01AB1234",
            "vehicleDetails": {"registrationNo": "KA05MN9876"},
        }
        assert map_extracted_fields(payload).registration_no == "KA05MN9876"

    def test_empty_nested_value_keeps_flat(self):
        """A blank nested value should not erase the flat one."""
        payload = {
            "policy_number": "P-100",
            "policyDetails": {"policyNumber": "  "},
        }
        assert map_extracted_fields(payload).policy_number == "P-100"

    def test_premium_details(self):
        payload = {
            "premiumDetails": {"basicPremium": "10000", "totalPremium": "11800", "gst": "1800"},
        }
        form = map_extracted_fields(payload)
        assert form.premium_amount == "10000"
        assert form.total_premium == "11800"
        assert form.gst == "1800"

    def test_nested_section_that_is_not_a_dict_is_ignored(self):
        form = map_extracted_fields({"engine_no": "E1", "vehicleDetails": "n/a"})
        assert form.engine_no == "E1"


class TestProductType:
    """Tests for product type normalisation."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Two Wheeler Package", "TW"),
            ("Private Car Comprehensive", "FOUR WHEELER"),
            ("Goods Truck", "GCV"),
            ("Taxi", "PCV"),
            ("Family Mediclaim", "HEALTH"),
            ("Standard Fire and Special Perils", "FIRE"),
            ("Public Liability", "LIABILITY"),
            ("Marine Transit", "MARINE"),
            ("Term Plan", "LIFE"),
        ],
    )
    def test_keywords(self, raw: str, expected: str):
        assert normalize_product_type(raw) == expected

    def test_unknown_text_is_kept(self):
        assert normalize_product_type(" Cyber Cover ") == "Cyber Cover"

    def test_blank_becomes_misc(self):
        assert normalize_product_type("") == "MISC"
        assert normalize_product_type(None) == "MISC"

    def test_form_product_type_is_normalised(self):
        assert map_extracted_fields({"policy_type": "Bike"}).product_type == "TW"

    def test_missing_product_type_stays_blank(self):
        """The form leaves an absent product type for the user to choose."""
        assert map_extracted_fields({"name": "A"}).product_type == ""
