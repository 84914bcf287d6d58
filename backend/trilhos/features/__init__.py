"""
Feature modules.

- routes: stored routes (model, repository, service, geocoding)
- tracking: live tracking client (sampler, cache, reconciler, auto-save)
"""
