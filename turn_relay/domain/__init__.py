"""Domain layer (pure logic).

- Keep game state and decision logic here.
- Avoid I/O: no HTTP/FastAPI, no Redis. Agent memory is handed in by the caller.
"""
