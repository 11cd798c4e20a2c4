from rest_framework.authentication import SessionAuthentication


class ProviderSessionAuthentication(SessionAuthentication):
    """
    Sesión emitida por el proveedor OAuth externo.
    Declara un esquema para que las peticiones sin sesión reciban 401 y no 403.
    """

    def authenticate_header(self, request):
        return 'Session realm="api"'
