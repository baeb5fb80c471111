from typing import Any, Dict, Iterable, Optional


class PixGatewayError(Exception):
    """
    Base for every error the checkout surfaces.
    status_code / code / public_message are what the HTTP layer returns;
    the str() of the exception is for server logs only.
    """
    status_code: int = 500
    code: str = "internal_error"
    public_message: str = "Erro ao processar pagamento PIX"

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.public_message}


class ValidationError(PixGatewayError):
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields or {}
        self.public_message = message

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        if self.fields:
            body["fields"] = dict(self.fields)
        return body


class DuplicateSubmissionError(PixGatewayError):
    status_code = 409
    code = "duplicate_submission"
    public_message = "Já existe um pagamento PIX sendo gerado"


class InvalidTransitionError(PixGatewayError):
    status_code = 409
    code = "invalid_transition"
    public_message = "Operação não permitida no estado atual do pagamento"


class NotFoundError(PixGatewayError):
    status_code = 404
    code = "not_found"
    public_message = "Transação não encontrada"

    def __init__(self, transaction_id: str):
        super().__init__(f"transaction {transaction_id!r} not found")
        self.transaction_id = transaction_id


class ConfigurationError(PixGatewayError):
    status_code = 500
    code = "configuration_error"
    public_message = "Serviço de pagamento não configurado"


class MissingPixDataError(PixGatewayError):
    status_code = 502
    code = "missing_pix_data"
    public_message = "Dados do PIX não retornados pelo processador"

    def __init__(self, response_keys: Iterable[str] = ()):
        self.response_keys = sorted(str(k) for k in response_keys)
        super().__init__(f"no PIX data in upstream response (keys: {self.response_keys})")


class UpstreamRejected(PixGatewayError):
    code = "upstream_rejected"
    public_message = "Pagamento recusado pelo processador"

    def __init__(self, status_code: int, details: Any = None):
        super().__init__(f"upstream returned HTTP {status_code}: {details!r}")
        self.status_code = status_code
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["details"] = self.details
        return body


class UpstreamUnavailable(PixGatewayError):
    status_code = 503
    code = "upstream_unavailable"
    public_message = "Processador de pagamento indisponível. Tente novamente."
