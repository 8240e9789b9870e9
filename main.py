"""
Quote a batch of conversion requests from a CSV file and print a points translation
"""

import os
import sys
import time
import pandas as pd
from loyalty_engine import ConversionEngine, Program


def main():
    input_file = sys.argv[1] if len(sys.argv) > 1 else "input/conversions.csv"
    output_file = sys.argv[2] if len(sys.argv) > 2 else "output/quotes.csv"

    print("Initializing Conversion Engine...")
    engine = ConversionEngine(log_level="INFO")

    if os.path.exists(input_file):
        print(f"Loading conversion requests from {input_file}...")
        start_time = time.time()
        df = pd.read_csv(input_file)
        result_df = engine.process_dataframe(df)
        os.makedirs(os.path.dirname(output_file) or ".", exist_ok=True)
        result_df.to_csv(output_file, index=False)
        print(f"Quoted {len(result_df)} rows in {time.time() - start_time:.2f} seconds -> {output_file}")
    else:
        quote = engine.quote(Program.QANTAS, Program.VELOCITY, 15000, monthly_volume=12000)
        print(f"Sample quote: {quote.input_amount} QANTAS -> {quote.output_amount} VELOCITY "
              f"(fee {quote.fee}, rate {quote.rate_used}, tier {quote.tier.label})")

    balance = 10000
    print(f"\nWhat {balance} QANTAS points can get you:")
    for translation in engine.translate(balance, Program.QANTAS):
        status = "available" if translation.affordable else f"{translation.progress_percent}% there"
        print(f"  - {translation.title}: {translation.points_required} points, "
              f"${translation.cash_value} ({status})")
    print(f"Estimated value: ${engine.estimated_cash_value(balance, Program.QANTAS)}")


if __name__ == "__main__":
    main()
