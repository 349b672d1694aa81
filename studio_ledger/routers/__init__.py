# studio_ledger/routers/__init__.py

# Esto expone los módulos para que "from studio_ledger.routers import users" funcione
from . import auth
from . import users
from . import packages
from . import registers
from . import sessions
