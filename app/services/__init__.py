# Services package.
#
# Each module exposes one service class that encapsulates business logic
# and database access for a single domain aggregate:
#
#   article_service: CRUD + filtered pagination + cache for Article
#   user_service:    CRUD for User, invalidating cached articles it embeds
#   auth_service:    registration, login and token issuance
#
# Services receive their collaborators (AsyncSession, CacheManager,
# TokenIssuer) as constructor arguments; ``app.dependencies`` assembles
# them per request.
