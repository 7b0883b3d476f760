from prometheus_client import Counter

OTP_ISSUED = Counter(
    "family_vault_otp_issued_total",
    "One-time passwords issued",
    ["purpose", "delivered"],
)
OTP_VERIFICATIONS = Counter(
    "family_vault_otp_verifications_total",
    "One-time password verification attempts",
    ["purpose", "outcome"],
)
EMERGENCY_ACCESS_REQUESTS = Counter(
    "family_vault_emergency_access_requests_total",
    "Emergency access requests by outcome",
    ["outcome"],
)
EMERGENCY_ACCESS_GRANTS = Counter(
    "family_vault_emergency_access_grants_total",
    "Accounts whose inactivity threshold elapsed",
)
