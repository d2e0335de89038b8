"""
Domain services.

Plain async functions over an ``AsyncSession`` that route handlers compose:
coupons, entitlements, payments, learning progress, BI insights and the
onboarding system step.
"""
