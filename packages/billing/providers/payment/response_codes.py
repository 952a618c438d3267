"""
VNPay response codes and bank codes.
"""

from enum import Enum

SUCCESS_CODE = "00"

# querydr: vnp_ResponseCode 91 means the gateway has no such transaction;
# vnp_TransactionStatus 01 means it was started but never completed
QUERY_NOT_FOUND_CODE = "91"
TRANSACTION_PENDING_STATUS = "01"

RESPONSE_MESSAGES = {
    "00": "Transaction successful",
    "07": "Amount debited. Transaction is suspected of fraud or unusual activity",
    "09": "Card/account is not registered for internet banking",
    "10": "Card/account authentication failed more than 3 times",
    "11": "Payment window expired. Please try again",
    "12": "Card/account is locked",
    "13": "Incorrect transaction authentication password (OTP)",
    "24": "Customer cancelled the transaction",
    "51": "Insufficient account balance",
    "65": "Account exceeded its daily transaction limit",
    "75": "Paying bank is under maintenance",
    "79": "Payment password entered incorrectly too many times",
    "99": "Other error",
}


def get_response_message(code: str) -> str:
    return RESPONSE_MESSAGES.get(code, f"Transaction failed (code: {code})")


def is_success(code: str) -> bool:
    return code == SUCCESS_CODE


class BankCode(str, Enum):
    """Bank codes accepted in vnp_BankCode."""

    VNPAYQR = "VNPAYQR"
    VNBANK = "VNBANK"  # Domestic ATM/account
    INTCARD = "INTCARD"  # International card, supports tokenization
    VCB = "VCB"
    TCB = "TCB"
    CTG = "CTG"
    VBA = "VBA"
    ACB = "ACB"
    BIDV = "BIDV"
    STB = "STB"
    MB = "MB"
    VPB = "VPB"
    TPB = "TPB"
    DAB = "DAB"
    EIB = "EIB"
    HDB = "HDB"
    LPB = "LPB"
    MSB = "MSB"
    NCB = "NCB"
    NVB = "NVB"
    OJB = "OJB"
    PGB = "PGB"
    PVCB = "PVCB"
    SGB = "SGB"
    SEAB = "SEAB"
    SHB = "SHB"
    VAB = "VAB"
    VCCB = "VCCB"
    VIB = "VIB"


def card_brand_from_number(card_number: str) -> str:
    """Brand from the leading digit of a (masked) card number."""
    if card_number.startswith("4"):
        return "Visa"
    if card_number.startswith("5"):
        return "MasterCard"
    return "Unknown"
