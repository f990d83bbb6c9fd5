"""Constantes HTTP pour éviter les valeurs magiques dans le code.

Ce module définit les codes de statut HTTP et les chemins de la Dify Console API utilisés par la
passerelle distante et les routes d'administration.
"""

# Codes de statut HTTP courants
HTTP_OK = 200
HTTP_REDIRECT_MIN = 300
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVER_ERROR_MIN = 500
HTTP_SERVER_ERROR_MAX = 599

# Dify Console API
DIFY_LOGIN_PATH = "/console/api/login"
DIFY_APPS_PATH = "/console/api/apps"
DIFY_DEFAULT_PAGE_LIMIT = 30
