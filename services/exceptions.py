class NotFoundError(LookupError):
    """Ressource introuvable (ou appartenant à un autre utilisateur)"""


class UserNotFoundError(NotFoundError):
    def __init__(self, username):
        super().__init__(f"Utilisateur non trouvé: {username}")
        self.username = username


class AuthenticationError(Exception):
    """Identifiants ou jeton invalides"""


class ExportError(Exception):
    """Échec lors de la génération d'un document d'export"""


class FileSizeLimitExceededError(ExportError):
    def __init__(self, size: int, limit: int):
        super().__init__(
            f"La taille du fichier ({size / (1024 * 1024):.2f} MB) dépasse la limite autorisée "
            f"({limit // (1024 * 1024)} MB)"
        )
        self.size = size
        self.limit = limit
