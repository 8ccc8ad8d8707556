"""auth/ -- Accounts, credentials and profiles for ApniSec.

Layer rule: auth/ imports from core/ and third-party libraries only.
It does NOT import from api/, issues/ or notify/ at runtime (services receive a
notifier object instead of importing one).
api/ imports from auth/, not the other way around.
"""
