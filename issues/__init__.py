"""issues/ -- Security issue tracking: domain model, repository and service.

Layer rule: issues/ may import from core/ and auth/ (for the user repository
used to address notifications). It does NOT import from api/.
"""
