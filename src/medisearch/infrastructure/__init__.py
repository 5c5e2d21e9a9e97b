"""
Infrastructure layer - everything that talks to the outside world.

- auth: session credential providers
- http: authenticated endpoint gateway (httpx)
- providers: one client per search backend
- cache: TTL response cache (cachetools)
"""
