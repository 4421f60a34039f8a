"""
Recurring Module - loans, loan payments and subscriptions

Commitments that repeat on their own schedule, independent of the
monthly overviews, plus the frequency arithmetic they share.
"""
