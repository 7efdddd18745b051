"""
Static lookup tables for symbol classification and formatting.
Kept as plain data so they can be extended and tested apart from the logic.
"""

from models.asset import AssetCategory

# Funds have no suffix convention, so they are matched by exact ticker.
FUND_SYMBOLS = frozenset([
    'SPY', 'QQQ', 'IWM', 'EFA', 'VTI', 'AGG', 'VWO', 'BND', 'VEA', 'GLD',
    'IVV', 'VOO', 'DIA', 'XLK', 'XLF', 'XLE', 'XLV', 'XLI', 'XLP', 'XLY',
    'XLB', 'XLU', 'SLV', 'USO', 'UNG', 'ARKK', 'ARKW',
])

FOREX_PREFIXES = (
    'EUR', 'GBP', 'JPY', 'AUD', 'CAD', 'CHF', 'CNY', 'NZD', 'INR', 'SGD',
    'HKD', 'MXN', 'BRL', 'ZAR', 'RUB',
)

CRYPTO_PREFIXES = (
    'BTC', 'ETH', 'USDT', 'BNB', 'XRP', 'ADA', 'DOGE', 'SOL', 'DOT', 'AVAX',
    'MATIC', 'LINK', 'UNI', 'SHIB',
)

COMMODITY_PREFIXES = (
    'GC', 'SI', 'CL', 'NG', 'ZC', 'HG', 'PA', 'PL', 'ZS', 'KC', 'CT', 'LBS',
    'CC', 'SB',
)

# The vendor's short/long names for futures contracts are unreliable.
COMMODITY_NAMES = {
    'GC=F': 'Gold',
    'SI=F': 'Silver',
    'CL=F': 'Crude Oil',
    'NG=F': 'Natural Gas',
    'HG=F': 'Copper',
    'ZC=F': 'Corn',
    'ZW=F': 'Wheat',
    'ZS=F': 'Soybeans',
    'PA=F': 'Palladium',
    'PL=F': 'Platinum',
    'KC=F': 'Coffee',
    'CC=F': 'Cocoa',
    'CT=F': 'Cotton',
    'LBS=F': 'Lumber',
    'SB=F': 'Sugar',
}

# Charting-widget tickers that differ from the quote vendor's.
CHART_SYMBOL_OVERRIDES = {
    AssetCategory.INDEX: {
        '^GSPC': 'SPX',
        '^DJI': 'DJI',
        '^IXIC': 'IXIC',
        '^FTSE': 'UKX',
        '^N225': 'JP225',
        '^GDAXI': 'DEU40',
        '^FCHI': 'FRA40',
        '^HSI': 'HSI',
        '^AXJO': 'AUS200',
    },
    AssetCategory.COMMODITY: {
        'GC=F': 'XAUUSD',
        'SI=F': 'XAGUSD',
        'CL=F': 'USOIL',
        'NG=F': 'NATURALGAS',
        'ZC=F': 'CORN',
        'HG=F': 'COPPER',
        'PA=F': 'XPDUSD',
        'PL=F': 'XPTUSD',
        'ZS=F': 'SOYBEAN',
        'KC=F': 'COFFEE',
    },
    AssetCategory.FOREX: {
        'EUR=X': 'EURUSD',
        'GBP=X': 'GBPUSD',
        'JPY=X': 'USDJPY',
        'AUD=X': 'AUDUSD',
        'CAD=X': 'USDCAD',
        'CHF=X': 'USDCHF',
        'CNY=X': 'USDCNH',
        'NZD=X': 'USDNZD',
        'INR=X': 'USDINR',
    },
    AssetCategory.CRYPTO: {
        'BTC-USD': 'BTCUSD',
        'ETH-USD': 'ETHUSD',
        'USDT-USD': 'USDTUSD',
        'BNB-USD': 'BNBUSD',
        'XRP-USD': 'XRPUSD',
        'ADA-USD': 'ADAUSD',
        'DOGE-USD': 'DOGEUSD',
        'SOL-USD': 'SOLUSD',
    },
    AssetCategory.FUND: {},
    AssetCategory.STOCK: {},
}

# Symbols refreshed by the scheduled job, in quote format.
DEFAULT_WATCHLIST = {
    AssetCategory.STOCK: [
        'AAPL', 'MSFT', 'GOOGL', 'AMZN', 'TSLA', 'META', 'NVDA', 'JPM', 'V', 'WMT',
        'JNJ', 'MA', 'PG', 'HD', 'BAC', 'DIS', 'NFLX', 'ADBE', 'PYPL', 'INTC',
        'CSCO', 'PFE', 'PEP', 'TMO', 'ABT',
    ],
    AssetCategory.INDEX: [
        '^GSPC', '^DJI', '^IXIC', '^FTSE', '^N225', '^HSI', '^STOXX50E', '^AXJO',
        '^BSESN', '^RUT', '^VIX', '^TNX', '^TYX', '^FCHI', '^GDAXI',
    ],
    AssetCategory.COMMODITY: [
        'GC=F', 'SI=F', 'CL=F', 'NG=F', 'HG=F', 'ZC=F', 'ZW=F', 'ZS=F', 'PA=F',
        'PL=F', 'KC=F', 'CC=F', 'CT=F', 'LBS=F', 'SB=F',
    ],
    AssetCategory.CRYPTO: [
        'BTC-USD', 'ETH-USD', 'BNB-USD', 'SOL-USD', 'XRP-USD', 'USDC-USD', 'USDT-USD',
        'ADA-USD', 'AVAX-USD', 'DOGE-USD', 'DOT-USD', 'LINK-USD', 'MATIC-USD', 'SHIB-USD',
        'TRX-USD', 'UNI-USD', 'WBTC-USD', 'LTC-USD', 'ATOM-USD', 'XLM-USD',
    ],
    AssetCategory.FOREX: [
        'EURUSD=X', 'GBPUSD=X', 'USDJPY=X', 'AUDUSD=X', 'USDCAD=X', 'USDCHF=X',
        'NZDUSD=X', 'EURGBP=X', 'EURJPY=X', 'GBPJPY=X', 'EURCAD=X', 'AUDJPY=X',
        'AUDNZD=X', 'CADJPY=X', 'EURAUD=X',
    ],
    AssetCategory.FUND: [
        'SPY', 'QQQ', 'DIA', 'IWM', 'VTI', 'VOO', 'VEA', 'VWO', 'BND', 'GLD',
        'SLV', 'USO', 'UNG', 'ARKK', 'ARKW',
    ],
}
