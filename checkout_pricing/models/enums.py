from enum import Enum

class ProgramCategory(str, Enum):
    STEP_1 = "step-1"
    STEP_2 = "step-2"
    INSTANT = "instant"

class PurchaseType(str, Enum):
    ORIGINAL_ORDER = "original-order"
    RESET_ORDER = "reset-order"
    ACTIVATION_ORDER = "activation-order"

class ResetProductType(str, Enum):
    EVALUATION = "evaluation"
    FUNDED = "funded"

class CouponStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SCHEDULED = "scheduled"
    EXPIRED = "expired"

class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
