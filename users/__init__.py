"""users/ -- The user aggregate: models, validation rules, persistence.

Layer rule: users/ imports only from core/ plus third-party libraries.
It does NOT import from api/ or auth/.
"""
