"""预警服务的业务异常，路由层统一转换为 {success: false, ...} 响应"""


class BudgetAlertError(Exception):
    def __init__(self, detail: str, status_code: int = 400):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class ValidationError(BudgetAlertError):
    def __init__(self, detail: str, errors: list[str] | None = None):
        super().__init__(detail, 400)
        self.errors = errors or [detail]


class NotFoundError(BudgetAlertError):
    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found", 404)


class ConflictError(BudgetAlertError):
    def __init__(self, detail: str):
        super().__init__(detail, 409)
