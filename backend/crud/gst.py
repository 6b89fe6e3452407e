from decimal import Decimal, ROUND_HALF_UP

from models.price_list import GstRateType, PackagePriceList

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

GST_RATE_PERCENT = {
    GstRateType.EXEMPT: Decimal("0"),
    GstRateType.ZERO: Decimal("0"),
    GstRateType.FIVE: Decimal("5"),
    GstRateType.TWELVE: Decimal("12"),
    GstRateType.EIGHTEEN: Decimal("18"),
    GstRateType.TWENTYEIGHT: Decimal("28"),
}


def to_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def gst_rate_percent(rate_type: GstRateType) -> Decimal:
    return GST_RATE_PERCENT[rate_type]


def calculate_gst(taxable_amount, rate_type: GstRateType, inter_state: bool = False) -> dict:
    """
    GST on ``taxable_amount``.

    Inter-state supplies carry IGST at the full rate. Intra-state supplies
    split the rate into equal CGST and SGST halves, each rounded to the paisa,
    so cgst + sgst always equals total_tax.
    """
    amount = to_money(taxable_amount)
    rate = gst_rate_percent(rate_type)

    cgst = sgst = igst = Decimal("0.00")
    if inter_state:
        igst = to_money(amount * rate / HUNDRED)
    else:
        cgst = to_money(amount * rate / 2 / HUNDRED)
        sgst = cgst
    total_tax = cgst + sgst + igst

    return {
        "taxable_amount": amount,
        "gst_rate_type": rate_type,
        "gst_rate": rate,
        "inter_state": inter_state,
        "cgst": cgst,
        "sgst": sgst,
        "igst": igst,
        "total_tax": total_tax,
        "total_amount": amount + total_tax,
    }


def package_components_total(package: PackagePriceList) -> Decimal:
    """What the package's services cost individually after the per-line discounts."""
    total = Decimal("0")
    for item in package.package_items:
        discount = Decimal(item.discount_percentage or 0)
        total += Decimal(item.service.base_price) * Decimal(item.quantity) * (HUNDRED - discount) / HUNDRED
    return to_money(total)
