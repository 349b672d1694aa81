# studio_ledger/config.py
import os

# Carga variables de entorno desde .env si existe
from dotenv import load_dotenv

load_dotenv(override=False)


def _env_list(name: str, default: str):
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# --- Base de datos ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./studio_ledger.db")
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"

# Tiempos máximos de transacción (segundos)
TX_LOCK_TIMEOUT = float(os.getenv("TX_LOCK_TIMEOUT", "15"))        # Espera para adquirir locks
TX_STATEMENT_TIMEOUT = float(os.getenv("TX_STATEMENT_TIMEOUT", "30"))  # Ejecución máxima
POOL_TIMEOUT = float(os.getenv("POOL_TIMEOUT", "15"))              # Espera por conexión libre

# --- Seguridad (JWT) ---
SECRET_KEY = os.getenv("SECRET_KEY", "studio_ledger_secret_key_change_me_in_prod")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 12)))

# --- API ---
ALLOWED_ORIGINS = _env_list("ALLOWED_ORIGINS", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- Cajas designadas ---
# Nombres visibles con los que se siembran las cajas de cada tipo
BANK_REGISTER_NAME = os.getenv("BANK_REGISTER_NAME", "BBVA")
CASH_REGISTER_NAME = os.getenv("CASH_REGISTER_NAME", "Efectivo")
SAVINGS_REGISTER_NAME = os.getenv("SAVINGS_REGISTER_NAME", "Caja")

# Etiquetas de los tres beneficiarios del reparto (A, B, C)
BENEFICIARY_NAMES = _env_list("BENEFICIARY_NAMES", "Socio A,Socio B,Socio C")
