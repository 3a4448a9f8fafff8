FEMALE_FEE = 250
DEFAULT_FEE = 350


def fee_for_category(category) -> int:
    """Registration fee in whole rupees for a declared category (gender)."""
    if str(category or "").strip().lower() == "female":
        return FEMALE_FEE
    return DEFAULT_FEE
