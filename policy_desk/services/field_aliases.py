"""
Field Aliases: map extraction payloads onto the add-policy form.

Extraction output is loosely structured. Every canonical form field has an
ordered tuple of source keys it may arrive under; the first key holding a
non-empty value wins. Three nested sections (vehicle, policy, premium
details) have their own tables and override flat values when non-empty.
"""

from typing import Any, Mapping

from ..schemas import PolicyFormData


FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "policyholder_name": (
        "policyholderName", "policyholder_name", "name", "customer_name", "insured_name",
        "client_name", "policy_holder", "holder_name", "customer", "insured",
        "Name", "CUSTOMER NAME", "POLICY HOLDER NAME", "INSURED NAME",
    ),
    "policy_number": (
        "policyNumber", "policy_number", "policyNo", "policy_no", "policy_id",
        "contract_number", "certificate_number", "document_number", "uin_no",
        "Policy No", "POLICY NUMBER", "UIN No", "Certificate No",
    ),
    "insurance_company": (
        "insuranceCompany", "insurance_company", "company", "insurer", "company_name",
        "provider", "insurance_provider", "underwriter", "issuer",
        "Company", "INSURANCE COMPANY", "COMPANY NAME", "INSURER",
    ),
    "start_date": (
        "startDate", "start_date", "fromDate", "from_date", "effectiveDate", "effective_date",
        "policy_start", "inception_date", "commencement_date", "valid_from",
        "From", "FROM DATE", "EFFECTIVE FROM", "POLICY START DATE",
    ),
    "expiry_date": (
        "expiryDate", "expiry_date", "toDate", "to_date", "maturityDate", "maturity_date",
        "policy_end", "expiration_date", "valid_till", "end_date", "renewal_date",
        "To", "TO DATE", "EXPIRY DATE", "POLICY END DATE", "VALID TILL",
    ),
    "premium_amount": (
        "premiumAmount", "premium_amount", "premium", "total_premium", "totalPremium",
        "basic_premium", "annual_premium", "policy_premium", "gross_premium",
        "Premium", "PREMIUM AMOUNT", "TOTAL PREMIUM", "ANNUAL PREMIUM",
    ),
    "total_premium": (
        "totalPremium", "total_premium", "final_premium", "payable_premium",
        "grand_total", "amount_payable", "total_amount", "net_payable",
        "Total Premium", "TOTAL PAYABLE", "FINAL AMOUNT",
    ),
    "net_premium": (
        "netPremium", "net_premium", "basic_premium", "base_premium",
        "premium_before_tax", "core_premium", "Net Premium", "BASE PREMIUM",
    ),
    "gst": (
        "gst", "tax", "gst_amount", "tax_amount", "service_tax", "vat",
        "igst", "cgst", "sgst", "total_tax", "GST", "TAX AMOUNT", "SERVICE TAX",
    ),
    "contact_no": (
        "contactNo", "contact_no", "phone", "mobile", "mobile_no", "phone_number",
        "contact_number", "cell_phone", "telephone", "Mobile", "MOBILE NO", "CONTACT",
    ),
    "email_id": (
        "emailId", "email_id", "email", "email_address", "contact_email",
        "Email", "EMAIL ID", "EMAIL ADDRESS",
    ),
    "registration_no": (
        "registrationNo", "registration_no", "vehicle_no", "reg_no", "vehicle_number",
        "registration_number", "car_number", "vehicle_registration", "rto_number",
        "Vehicle Registration No", "REG NO", "VEHICLE NUMBER",
    ),
    "engine_no": (
        "engineNo", "engine_no", "engine_number", "engine_id",
        "Engine No", "ENGINE NUMBER", "ENGINE NO",
    ),
    "chasis_no": (
        "chasisNo", "chasis_no", "chassis_no", "chassis_number", "vin",
        "vehicle_identification_number", "frame_number",
        "Chassis No", "CHASSIS NUMBER", "VIN", "FRAME NO",
    ),
    "hp": (
        "hp", "horsepower", "engine_power", "power", "bhp", "kw",
        "HP", "HORSEPOWER", "POWER", "BHP",
    ),
    "idv": (
        "idv", "insured_declared_value", "vehicle_value", "market_value",
        "declared_value", "sum_insured", "coverage_amount",
        "IDV", "INSURED DECLARED VALUE", "VEHICLE VALUE", "SUM INSURED",
    ),
    "ncb_percentage": (
        "ncbPercentage", "ncb_percentage", "ncb", "no_claim_bonus",
        "bonus_percentage", "discount_percentage", "ncb_discount",
        "NCB", "NO CLAIM BONUS", "BONUS %", "DISCOUNT %",
    ),
    "risk_location_address": (
        "riskLocationAddress", "risk_location_address", "address", "location",
        "registered_address", "risk_address", "vehicle_location", "garaging_address",
        "Address", "RISK LOCATION", "REGISTERED ADDRESS",
    ),
    "remark": (
        "remark", "remarks", "notes", "comments", "special_conditions",
        "additional_info", "description", "Remarks", "NOTES", "COMMENTS",
    ),
    "reference_from_name": (
        "referenceFromName", "reference_from_name", "reference", "agent_name",
        "broker_name", "intermediary", "advisor_name", "sales_person",
        "Agent Name", "BROKER", "REFERENCE", "ADVISOR",
    ),
    "commission_percentage": (
        "commissionPercentage", "commission_percentage", "commission_percent", "commission_%",
        "agent_commission_%", "broker_commission_%", "Commission %", "COMMISSION PERCENTAGE",
    ),
    "commission_amount": (
        "commissionAmount", "commission_amount", "commission", "agent_commission",
        "broker_commission", "Commission Amount", "COMMISSION", "AGENT COMMISSION",
    ),
    "product_type": (
        "productType", "product_type", "type", "policy_type", "coverage_type",
        "insurance_type", "plan_type", "category", "line_of_business",
        "Product Type", "POLICY TYPE", "COVERAGE TYPE", "CATEGORY",
    ),
}

NESTED_SECTIONS: dict[str, dict[str, tuple[str, ...]]] = {
    "vehicleDetails": {
        "registration_no": ("registrationNo", "regNo", "vehicleNumber"),
        "engine_no": ("engineNo", "engineNumber"),
        "chasis_no": ("chasisNo", "chassisNo", "vin"),
        "hp": ("hp", "power", "horsepower"),
        "idv": ("idv", "vehicleValue", "sumInsured"),
    },
    "policyDetails": {
        "policy_number": ("policyNumber", "policyNo", "uinNo"),
        "start_date": ("startDate", "fromDate", "effectiveDate"),
        "expiry_date": ("expiryDate", "toDate", "maturityDate"),
    },
    "premiumDetails": {
        "premium_amount": ("basicPremium", "netPremium", "corePremium"),
        "total_premium": ("totalPremium", "finalAmount", "payableAmount"),
        "gst": ("gst", "tax", "serviceTax"),
        "ncb_percentage": ("ncb", "noClaimBonus", "discount"),
    },
}

# Checked in order; the first category with a matching keyword wins
PRODUCT_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("TW", ("TWO", "2W", "BIKE", "MOTORCYCLE")),
    ("FOUR WHEELER", ("FOUR", "4W", "CAR", "PRIVATE")),
    ("GCV", ("COMMERCIAL", "GOODS", "TRUCK")),
    ("PCV", ("PASSENGER", "BUS", "TAXI")),
    ("HEALTH", ("HEALTH", "MEDICAL", "MEDICLAIM")),
    ("FIRE", ("FIRE", "PROPERTY")),
    ("LIABILITY", ("LIABILITY", "PUBLIC")),
    ("MARINE", ("MARINE", "CARGO", "TRANSIT")),
    ("LIFE", ("LIFE", "TERM", "ENDOWMENT")),
)

DEFAULT_PRODUCT_TYPE = "MISC"


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    return ""


def resolve_field(payload: Mapping[str, Any], aliases: tuple[str, ...]) -> str:
    """First non-empty value among ``aliases``, stripped, or ""."""
    for key in aliases:
        text = _as_text(payload.get(key))
        if text:
            return text
    return ""


def unwrap_payload(raw: Any) -> dict[str, Any] | None:
    """Find the field dict in a response shaped as
    ``[{"output": {...}}]``, ``{"output": {...}}``, ``{"data": {...}}`` or bare.
    """
    if isinstance(raw, list):
        if not raw or not isinstance(raw[0], dict):
            return None
        raw = raw[0]
    if not isinstance(raw, dict):
        return None
    for key in ("output", "data"):
        inner = raw.get(key)
        if isinstance(inner, dict):
            return inner
    return raw


def normalize_product_type(text: str | None) -> str:
    normalized = (text or "").strip().upper()
    for category, keywords in PRODUCT_TYPE_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return category
    return (text or "").strip() or DEFAULT_PRODUCT_TYPE


def map_extracted_fields(payload: Mapping[str, Any], file_name: str = "") -> PolicyFormData:
    """Flatten an unwrapped payload into form data."""
    values = {field: resolve_field(payload, aliases) for field, aliases in FIELD_ALIASES.items()}

    for section, table in NESTED_SECTIONS.items():
        nested = payload.get(section)
        if not isinstance(nested, Mapping):
            continue
        for field, aliases in table.items():
            text = resolve_field(nested, aliases)
            if text:
                values[field] = text

    if values["product_type"]:
        values["product_type"] = normalize_product_type(values["product_type"])

    return PolicyFormData(pdf_file_name=file_name, **values)
