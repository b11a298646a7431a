"""fund-ledger：基金交易结算与持仓对账引擎。"""
