"""
Aggregation layer: dashboard, header, staff, SKU and trend roll-ups.
"""
