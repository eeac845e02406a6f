"""Protocol constants for the margin account risk engine."""

from decimal import Context, Decimal

# Uniswap V3 TickMath bounds
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Q64.96 fixed-point unit for sqrt prices
Q96 = 2**96

# Volatility clamp applied before probing (dimensionless)
SIGMA_MIN = Decimal("0.02")
SIGMA_MAX = Decimal("0.15")
SIGMA_B = Decimal(2)
# Worst-case window when interest-bearing balances count as collateral
SIGMA_WIDENING_HOURS = 24

# Liquidators earn 1/20 of any shortfall
LIQUIDATION_INCENTIVE = 20
# Liabilities are padded by 1/200 = 0.5%
MAX_LEVERAGE = 200

# Keeps threshold probes away from the representable sqrt-price edges
SEARCH_DOMAIN_MARGIN = Decimal("1.05")
SEARCH_ITERATIONS = 30

# Health reported when an account has nothing owed at a probe
HEALTH_NO_LIABILITIES = Decimal(1000)

# Arithmetic context for all price math; never installed as the global context
DECIMAL_CONTEXT = Context(prec=60)

# Representative pool for the static provider (token0 = USDC, token1 = WETH)
USDC = "USDC"
WETH = "WETH"
USDC_DECIMALS = 6
WETH_DECIMALS = 18
USDC_WETH_POOL = "0x8ad599c3A0ff1De082011EFDDc58f1908eb6e6D8"

# Environment variable naming a JSON account snapshot
SNAPSHOT_ENV_VAR = "MARGIN_RISK_SNAPSHOT"
