"""
Exceções de domínio da loja.

Os serviços levantam estas exceções; o handler do DRF
(`apps.core.exception_handler`) as converte em respostas JSON.

Hierarquia:
    StoreError (base)
    ├── ValidationError (400, dados de entrada inválidos)
    ├── NotFoundError (404, entidade não existe)
    ├── PermissionDeniedError (403, recurso de outro usuário)
    ├── BusinessRuleError (400, regra de negócio violada)
    ├── RateLimitedError (429, muitas requisições)
    ├── PaymentProviderError (502, Mercado Pago / Stripe)
    └── StorageError (502, R2 / Cloudinary)
"""


class StoreError(Exception):
    """
    Exceção base para todos os erros de domínio.

    Example:
        try:
            cancel_order(order)
        except StoreError as e:
            logger.error(f"Erro de domínio: {e}")
    """

    status_code = 400

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        """Serializa exceção para dicionário (útil para APIs)."""
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(StoreError):
    """
    Erro de validação de dados de entrada.

    Example:
        if quantity < 1:
            raise ValidationError("Quantidade inválida", field="quantity")
    """

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class NotFoundError(StoreError):
    """Entidade não encontrada."""

    status_code = 404

    def __init__(self, message: str, entity_type: str = None, entity_id=None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message, "NOT_FOUND")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id is not None:
            result["entity_id"] = str(self.entity_id)
        return result


class PermissionDeniedError(StoreError):
    """Usuário autenticado sem acesso ao recurso."""

    status_code = 403

    def __init__(self, message: str = "Acesso negado"):
        super().__init__(message, "FORBIDDEN")


class BusinessRuleError(StoreError):
    """
    Violação de regra de negócio.

    Example:
        if order.status == OrderStatus.COMPLETED:
            raise BusinessRuleError("Pedido já foi pago", rule="order_already_paid")
    """

    def __init__(self, message: str, rule: str = None):
        self.rule = rule
        super().__init__(message, "BUSINESS_RULE_VIOLATION")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.rule:
            result["rule"] = self.rule
        return result


class RateLimitedError(StoreError):
    status_code = 429

    def __init__(self, message: str = "Muitas requisições. Aguarde um momento.", retry_after: int = None):
        self.retry_after = retry_after
        super().__init__(message, "RATE_LIMITED")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        return result


class PaymentProviderError(StoreError):
    """Falha ao falar com o provedor de pagamento."""

    status_code = 502

    def __init__(self, message: str, provider: str = None):
        self.provider = provider
        super().__init__(message, "PAYMENT_PROVIDER_ERROR")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.provider:
            result["provider"] = self.provider
        return result


class StorageError(StoreError):
    """Falha no armazenamento externo (R2 ou Cloudinary)."""

    status_code = 502

    def __init__(self, message: str):
        super().__init__(message, "STORAGE_ERROR")
