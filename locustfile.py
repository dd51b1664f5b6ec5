"""
Load test for the analysis endpoint.

Repeated addresses should be served from the result cache; watch p95 drop
after the first round. Wallets come from wallets.csv (column "wallet") or
the WALLETS env var (comma-separated).

Run: locust -f locustfile.py --host http://localhost:8000
"""

import csv
import os
import random
from pathlib import Path

from locust import HttpUser, between, task

ANALYSIS_PATH = "/api/tools/solana-address-analysis"


def _load_wallets() -> list[str]:
    env_wallets = [w.strip() for w in os.getenv("WALLETS", "").split(",") if w.strip()]
    if env_wallets:
        return env_wallets
    path = Path("wallets.csv")
    if not path.exists():
        return ["9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"]
    with open(path, newline="", encoding="utf-8") as f:
        return [row["wallet"].strip() for row in csv.DictReader(f) if row.get("wallet")]


wallets = _load_wallets()


class BubblesUser(HttpUser):
    wait_time = between(1, 2)

    @task(5)
    def analyze_wallet(self):
        self.client.get(
            ANALYSIS_PATH,
            params={"address": random.choice(wallets)},
            name=ANALYSIS_PATH,
        )

    @task(1)
    def cache_stats(self):
        self.client.get(ANALYSIS_PATH, params={"cache": "stats"}, name="cache_stats")
