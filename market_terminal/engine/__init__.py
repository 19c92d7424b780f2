"""Computations over market state (valuation, trade flow history)."""
