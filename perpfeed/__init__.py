"""
perpfeed - multi-exchange perpetuals market data and account aggregation

Hyperliquid, dYdX v4, GMX v2, Lighter and Aster normalized into one
order book / trade tape / candle model.
"""
__version__ = "0.1.0"
