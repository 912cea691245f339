"""
Services Layer

Scheduling and runtime services that:
- Accept domain inputs (IDs, sessions, plain values)
- Return domain outputs (models, result objects)
- Do NOT depend on HTTP request/response objects
- Pure components (pairing, scheduling, idle status, timestamps) never touch the database
"""
