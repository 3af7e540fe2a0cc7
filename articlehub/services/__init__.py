# Services package.
#
#   article_service         — ArticleStore interface, SQLAlchemy-backed
#                             ArticleService and the search predicate
#   cached_article_service  — read-through / write-invalidate wrapper
#                             around any ArticleStore
#   user_service            — sign-up, login and profile operations
#
# Everything here works on a request-scoped AsyncSession and flushes
# without committing; the ``get_db`` dependency owns the transaction.
