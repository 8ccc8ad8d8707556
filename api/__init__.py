"""api/ -- FastAPI application: routes, request pipeline and error envelope.

Layer rule: api/ is the outermost layer. It imports from core/, auth/,
issues/ and notify/; nothing imports from api/.
"""
