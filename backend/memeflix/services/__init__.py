"""
Memeflix Backend — Services Layer
==================================

Service Inventory:
    - query_builder:     typed search predicates → SQLAlchemy statements
    - MemeService:       listing, search, rows, random, detail, related tags
    - TagService:        popular and all tags
    - VoteService:       the vote ledger transaction and counter repair
    - FavoriteService /
      HistoryService:    per-user collections
    - AuthService:       registration, login, tokens
    - MediaService:      safe filename resolution and streaming

Services are stateless; each module exposes a singleton and every method
receives the request's AsyncSession.
"""
