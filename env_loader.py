"""Ortam yükleyici: .env dosyasını bir kez okur. Giriş scriptleri import eder.

STOCKLEDGER_ENV_FILE verilmişse o dosya, yoksa proje kökündeki .env kullanılır.
Ortamda zaten tanımlı değişkenler ezilmez.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

ENV_PATH = Path(os.environ.get("STOCKLEDGER_ENV_FILE") or Path(__file__).resolve().parent / ".env")

loaded = load_dotenv(ENV_PATH, override=False)
