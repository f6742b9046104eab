"""
Observers package.

Holds observer definitions and the registry that, given a record change,
returns the observers whose conditions the change satisfies. Executing an
observer's side effects is left to the caller.

Modules of interest:
- models: Observer, ObserverDefinition and LookupResult.
- registry: In-memory registry with per data type caching.
"""
