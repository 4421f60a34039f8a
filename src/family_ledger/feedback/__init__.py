"""
Feedback Module - financial health scoring

Turns a month's income, spending, budgets and loan payments into a
0-100 score with a label and short recommendations.

Fun fact: the three components are weighted 40/30/30, so a household
that saves a fifth of its income already holds the biggest share.
"""
