"""auth/ -- Credential hashing, bearer tokens, and the register/login flows.

Layer rule: auth/ imports from core/ and users/ plus third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
