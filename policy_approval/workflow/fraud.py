# policy_approval/workflow/fraud.py
"""
Fraud check run when a policy is created.

A demonstration heuristic: a random anomaly flag plus two deterministic
checks, summed into a risk score and compared to a fixed cutoff. The result
annotates the policy and never blocks creation.
"""

import random
import re
from typing import List, Optional

from .models import FraudCheckResult
from .notifications import notify
from ..settings import settings


RANDOM_FLAG_SCORE = 50
HIGH_PREMIUM_SCORE = 30
INVALID_NAME_SCORE = 40

MIN_CUSTOMER_NAME_LENGTH = 3
_DIGITS_ONLY = re.compile(r"^\d+$")

PASSED_REASON = "All fraud checks passed successfully"


def is_invalid_customer_name(customer_name: str) -> bool:
    """Too short, or nothing but digits."""
    return len(customer_name) < MIN_CUSTOMER_NAME_LENGTH or bool(_DIGITS_ONLY.match(customer_name))


def perform_fraud_check(
    customer_name: str,
    premium_amount: float,
    product_type: str,
    rng: Optional[random.Random] = None,
) -> FraudCheckResult:
    """
    Score a new policy for fraud risk.

    Args:
        customer_name: Insured customer name
        premium_amount: Policy premium
        product_type: Insurance product type (reported, not scored)
        rng: Random source; defaults to the module-level generator

    Returns:
        FraudCheckResult with passed flag, reason and score
    """
    rng = rng or random
    risk_factors: List[str] = []
    risk_score = 0

    if rng.random() < settings.fraud_random_flag_rate:
        risk_factors.append("Anomalous pattern detected by AI model")
        risk_score += RANDOM_FLAG_SCORE

    if float(premium_amount) > settings.fraud_premium_threshold:
        risk_factors.append("Unusually high premium amount")
        risk_score += HIGH_PREMIUM_SCORE

    if is_invalid_customer_name(customer_name):
        risk_factors.append("Invalid customer name format")
        risk_score += INVALID_NAME_SCORE

    passed = risk_score < settings.fraud_risk_cutoff
    if passed:
        reason = PASSED_REASON
    else:
        reason = f"Fraud risk detected: {', '.join(risk_factors)} (Risk Score: {risk_score})"

    notify(
        "fraud_check",
        "Fraud check completed",
        customer=customer_name,
        product_type=product_type,
        result="PASSED" if passed else "FAILED",
        risk_score=risk_score,
        reason=reason,
    )

    return FraudCheckResult(
        passed=passed,
        reason=reason,
        risk_score=risk_score,
        risk_factors=tuple(risk_factors),
    )
