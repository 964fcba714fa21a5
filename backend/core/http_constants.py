"""Constantes HTTP et limites pour éviter les valeurs magiques dans le code.

Ce module définit les codes de statut HTTP utilisés par l'API ainsi que les bornes de pagination
des listes de modèles de contenu.
"""

# Codes de statut HTTP courants
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_SERVER_ERROR = 500

# Pagination des listes
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 1000
