"""Static portfolio reference table.

The table is the authoritative universe of entities: scrapers are driven
from it and the merge engine writes exactly one record per entry.
"""
from typing import List, Tuple

from portfolio_sync.providers.models import Entity, ScrapeTarget, SymbolAliases


PORTFOLIO_STOCKS: Tuple[Entity, ...] = (
    Entity(
        id="hdfcbank",
        sector="Financial Sector",
        symbol=SymbolAliases(google="HDFCBANK:NSE", yahoo="HDFCBANK.NS"),
        name="HDFC Bank",
        purchase_price=1490,
        quantity=50,
        investment=74500,
        portfolio_percentage=5,
    ),
    Entity(
        id="bajfinance",
        sector="Financial Sector",
        symbol=SymbolAliases(google="BAJFINANCE:NSE", yahoo="BAJFINANCE.NS"),
        name="Bajaj Finance",
        purchase_price=6466,
        quantity=15,
        investment=96990,
        portfolio_percentage=6,
    ),
    Entity(
        id="icicibank",
        sector="Financial Sector",
        symbol=SymbolAliases(google="ICICIBANK:NSE", yahoo="ICICIBANK.NS"),
        name="ICICI Bank",
        purchase_price=780,
        quantity=84,
        investment=65520,
        portfolio_percentage=4,
    ),
    Entity(
        id="bajajhfl",
        sector="Financial Sector",
        symbol=SymbolAliases(google="BAJAJHFL:NSE", yahoo="BAJAJHFL.NS"),
        name="Bajaj Housing Finance",
        purchase_price=130,
        quantity=504,
        investment=65520,
        portfolio_percentage=4,
    ),
    Entity(
        id="savfin",
        sector="Financial Sector",
        symbol=SymbolAliases(google="511577:BOM", yahoo="SAVFI.BO"),
        name="Savani Financials Ltd",
        purchase_price=24,
        quantity=1080,
        investment=25920,
        portfolio_percentage=2,
    ),
    Entity(
        id="affle",
        sector="Tech Sector",
        symbol=SymbolAliases(google="AFFLE:NSE", yahoo="AFFLE.NS"),
        name="Affle India",
        purchase_price=1151,
        quantity=50,
        investment=57550,
        portfolio_percentage=4,
    ),
    Entity(
        id="ltimindtree",
        sector="Tech Sector",
        symbol=SymbolAliases(google="LTIM:NSE", yahoo="LTIM.NS"),
        name="LTI Mindtree",
        purchase_price=4775,
        quantity=16,
        investment=76400,
        portfolio_percentage=5,
    ),
    Entity(
        id="kpittech",
        sector="Tech Sector",
        symbol=SymbolAliases(google="KPITTECH:NSE", yahoo="KPITTECH.NS"),
        name="KPIT Tech",
        purchase_price=672,
        quantity=61,
        investment=40992,
        portfolio_percentage=3,
    ),
    Entity(
        id="tatatech",
        sector="Tech Sector",
        symbol=SymbolAliases(google="TATATECH:NSE", yahoo="TATATECH.NS"),
        name="Tata Tech",
        purchase_price=1072,
        quantity=63,
        investment=67536,
        portfolio_percentage=4,
    ),
    Entity(
        id="blse",
        sector="Tech Sector",
        symbol=SymbolAliases(google="BLSE:NSE", yahoo="BLSE.NS"),
        name="BLS E-Services Ltd",
        purchase_price=232,
        quantity=191,
        investment=44312,
        portfolio_percentage=3,
    ),
    Entity(
        id="tanla",
        sector="Tech Sector",
        symbol=SymbolAliases(google="TANLA:NSE", yahoo="TANLA.NS"),
        name="Tanla Platforms",
        purchase_price=1134,
        quantity=45,
        investment=51030,
        portfolio_percentage=3,
    ),
    Entity(
        id="dmart",
        sector="Consumer",
        symbol=SymbolAliases(google="DMART:NSE", yahoo="DMART.NS"),
        name="Avenue Supermarts (Dmart)",
        purchase_price=3777,
        quantity=27,
        investment=101979,
        portfolio_percentage=7,
    ),
    Entity(
        id="tataconsum",
        sector="Consumer",
        symbol=SymbolAliases(google="TATACONSUM:NSE", yahoo="TATACONSUM.NS"),
        name="Tata Consumer",
        purchase_price=845,
        quantity=90,
        investment=76050,
        portfolio_percentage=5,
    ),
    Entity(
        id="pidilite",
        sector="Consumer",
        symbol=SymbolAliases(google="PIDILITIND:NSE", yahoo="PIDILITIND.NS"),
        name="Pidilite Industries",
        purchase_price=2376,
        quantity=36,
        investment=85536,
        portfolio_percentage=6,
    ),
    Entity(
        id="tatapower",
        sector="Power",
        symbol=SymbolAliases(google="TATAPOWER:NSE", yahoo="TATAPOWER.NS"),
        name="Tata Power",
        purchase_price=224,
        quantity=225,
        investment=50400,
        portfolio_percentage=3,
    ),
    Entity(
        id="kpigreen",
        sector="Power",
        symbol=SymbolAliases(google="KPIGREEN:NSE", yahoo="KPIGREEN.NS"),
        name="KPI Green Energy Ltd",
        purchase_price=875,
        quantity=50,
        investment=43750,
        portfolio_percentage=3,
    ),
    Entity(
        id="suzlon",
        sector="Power",
        symbol=SymbolAliases(google="SUZLON:NSE", yahoo="SUZLON.NS"),
        name="Suzlon",
        purchase_price=44,
        quantity=450,
        investment=19800,
        portfolio_percentage=1,
    ),
    Entity(
        id="gensol",
        sector="Power",
        symbol=SymbolAliases(google="GENSOL:NSE", yahoo="GENSOL.NS"),
        name="Gensol Engineering",
        purchase_price=998,
        quantity=45,
        investment=44910,
        portfolio_percentage=3,
    ),
    Entity(
        id="hariompipe",
        sector="Pipe Sector",
        symbol=SymbolAliases(google="HARIOMPIPE:NSE", yahoo="HARIOMPIPE.NS"),
        name="Hariom Pipe Industries Ltd",
        purchase_price=580,
        quantity=60,
        investment=34800,
        portfolio_percentage=2,
    ),
    Entity(
        id="astral",
        sector="Pipe Sector",
        symbol=SymbolAliases(google="ASTRAL:NSE", yahoo="ASTRAL.NS"),
        name="Astral Ltd.",
        purchase_price=1517,
        quantity=56,
        investment=84952,
        portfolio_percentage=6,
    ),
    Entity(
        id="polycab",
        sector="Pipe Sector",
        symbol=SymbolAliases(google="POLYCAB:NSE", yahoo="POLYCAB.NS"),
        name="Polycab India",
        purchase_price=2818,
        quantity=28,
        investment=78904,
        portfolio_percentage=5,
    ),
    Entity(
        id="cleansci",
        sector="Others",
        symbol=SymbolAliases(google="CLEAN:NSE", yahoo="CLEAN.NS"),
        name="Clean Science and Technology Ltd",
        purchase_price=1610,
        quantity=32,
        investment=51520,
        portfolio_percentage=3,
    ),
    Entity(
        id="deepakntr",
        sector="Others",
        symbol=SymbolAliases(google="DEEPAKNTR:NSE", yahoo="DEEPAKNTR.NS"),
        name="Deepak Nitrite",
        purchase_price=2248,
        quantity=27,
        investment=60696,
        portfolio_percentage=4,
    ),
    Entity(
        id="fineorg",
        sector="Others",
        symbol=SymbolAliases(google="FINEORG:NSE", yahoo="FINEORG.NS"),
        name="Fine Organic",
        purchase_price=4284,
        quantity=16,
        investment=68544,
        portfolio_percentage=4,
    ),
    Entity(
        id="gravita",
        sector="Others",
        symbol=SymbolAliases(google="GRAVITA:NSE", yahoo="GRAVITA.NS"),
        name="Gravita",
        purchase_price=2037,
        quantity=8,
        investment=16296,
        portfolio_percentage=1,
    ),
    Entity(
        id="sbilife",
        sector="Others",
        symbol=SymbolAliases(google="SBILIFE:NSE", yahoo="SBILIFE.NS"),
        name="SBI Life Insurance",
        purchase_price=1197,
        quantity=49,
        investment=58653,
        portfolio_percentage=4,
    ),
)


def google_symbols(entities=PORTFOLIO_STOCKS) -> List[ScrapeTarget]:
    """Google Finance symbols keyed by entity id."""
    return [ScrapeTarget(id=e.id, symbol=e.symbol.google) for e in entities]


def yahoo_symbols(entities=PORTFOLIO_STOCKS) -> List[ScrapeTarget]:
    """Yahoo Finance symbols keyed by entity id."""
    return [ScrapeTarget(id=e.id, symbol=e.symbol.yahoo) for e in entities]
