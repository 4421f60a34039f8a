"""
Savings Module - named savings buckets and their transactions
"""
