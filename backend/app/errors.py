# errors.py
# Domain errors raised by the core modules; main.py maps them to HTTP responses


class AppError(Exception):
    status_code = 400
    default_message = "Operação inválida."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AppError):
    default_message = "Dados inválidos."


class DuplicateEmailError(ValidationFailed):
    status_code = 409
    default_message = "Este login/e-mail já está em uso no sistema."


class InvalidFileError(ValidationFailed):
    status_code = 415
    default_message = "Apenas arquivos PDF são aceitos."


class AuthError(AppError):
    status_code = 401
    default_message = "Credenciais inválidas. Verifique seu login e senha."


class PermissionDenied(AppError):
    status_code = 403
    default_message = "Acesso restrito a administradores."


class ProtectedUserError(AppError):
    status_code = 403
    default_message = "Não é possível remover a conta master do sistema."


class ConfirmationRequired(AppError):
    status_code = 409
    default_message = "Deseja realmente remover este acesso? Esta ação é irreversível."


class NotFoundError(AppError):
    status_code = 404
    default_message = "Registro não encontrado."


class AIServiceError(AppError):
    status_code = 502
    default_message = "Falha ao processar análise técnica. Verifique sua conexão."


class ExtractionError(AppError):
    status_code = 422
    default_message = "Não foi possível extrair texto do PDF."


class ChatBusyError(AppError):
    status_code = 409
    default_message = "Aguarde a resposta anterior do consultor."
