"""
Synthetic Retail Sales Dataset Generator
Generates one flat sales row per (date, store, product) using vectorized operations
"""

import argparse
from datetime import date, timedelta
from pathlib import Path

import numpy as np
import polars as pl

np.random.seed(42)

OUTPUT_DIR = Path(__file__).parent.parent / "data"

STORES = {"S001": "North", "S002": "South", "S003": "East", "S004": "West", "S005": "North"}
CATEGORIES = ["Groceries", "Toys", "Electronics", "Furniture", "Clothing"]
WEATHER = ["Sunny", "Rainy", "Cloudy", "Snowy"]
PROMOTIONS = {"PR1": "Spring Sale", "PR2": "Holiday Discount", "PR3": None}
SEASON_BY_MONTH = {
    12: "Winter", 1: "Winter", 2: "Winter",
    3: "Spring", 4: "Spring", 5: "Spring",
    6: "Summer", 7: "Summer", 8: "Summer",
    9: "Autumn", 10: "Autumn", 11: "Autumn",
}


def generate_sales(start: date, days: int, products_per_store: int) -> pl.DataFrame:
    print(f"📊 Generating {days} days x {len(STORES)} stores x {products_per_store} products...")

    dates = [start + timedelta(days=i) for i in range(days)]
    store_ids = list(STORES)
    product_ids = [f"P{i:04d}" for i in range(1, products_per_store + 1)]
    product_category = {p: CATEGORIES[i % len(CATEGORIES)] for i, p in enumerate(product_ids)}

    d_idx, s_idx, p_idx = np.meshgrid(
        np.arange(days), np.arange(len(store_ids)), np.arange(len(product_ids)), indexing="ij"
    )
    d_idx, s_idx, p_idx = d_idx.ravel(), s_idx.ravel(), p_idx.ravel()
    n = d_idx.size

    # Date-level attributes are drawn once per date so the date dimension stays consistent
    epidemic_by_date = np.random.random(days) < 0.1
    row_dates = [dates[i] for i in d_idx]
    row_products = [product_ids[i] for i in p_idx]

    price = np.round(np.random.uniform(10, 100, n), 2)
    competitor = np.round(price * np.random.uniform(0.9, 1.1, n), 2)
    promo_ids = np.random.choice(["", *PROMOTIONS], n, p=[0.7, 0.1, 0.1, 0.1])

    df = pl.DataFrame({
        "date": [d.isoformat() for d in row_dates],
        "store_id": [store_ids[i] for i in s_idx],
        "product_id": row_products,
        "category": [product_category[p] for p in row_products],
        "region": [STORES[store_ids[i]] for i in s_idx],
        "inventory_level": np.random.randint(0, 500, n),
        "units_sold": np.random.randint(0, 200, n),
        "units_ordered": np.random.randint(0, 200, n),
        "demand": np.random.randint(0, 250, n),
        "price": [f"{p:.2f}" for p in price],
        "discount": np.random.choice(["0", "5", "10", "15", "20"], n),
        "weather": np.random.choice(WEATHER, n),
        "promotion": promo_ids,
        "promotion_name": [PROMOTIONS.get(p) or "" for p in promo_ids],
        "competitor_price": [f"{c:.2f}" if np.random.random() > 0.05 else "" for c in competitor],
        "seasonality": [SEASON_BY_MONTH[d.month] for d in row_dates],
        "epidemic": [int(epidemic_by_date[i]) for i in d_idx],
    })
    return df


def main():
    parser = argparse.ArgumentParser(description="Generate a synthetic retail sales CSV")
    parser.add_argument("--start", default="2022-01-01", help="First sale date (YYYY-MM-DD)")
    parser.add_argument("--days", type=int, default=900, help="Number of consecutive days")
    parser.add_argument("--products", type=int, default=20, help="Products per store")
    parser.add_argument("--output", default=str(OUTPUT_DIR / "sales.csv"), help="Output CSV path")
    args = parser.parse_args()

    print("=" * 60)
    print("🛒 Retail Sales Dataset Generator")
    print("=" * 60 + "\n")

    df = generate_sales(date.fromisoformat(args.start), args.days, args.products)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    df.write_csv(output)

    size = output.stat().st_size / 1024 / 1024
    print(f"   ✅ {output.name}: {len(df):,} rows ({size:.2f} MB)")


if __name__ == "__main__":
    main()
