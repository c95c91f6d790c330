"""Hull MES: work-order lifecycle engine for boat production."""
