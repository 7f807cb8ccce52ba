"""Endpoint paths, relative to ApiSettings.base_url."""


class Endpoints:
    # Authentication
    LOGIN = "/login"
    REGISTER = "/register"
    LOGOUT = "/logout"
    USER = "/user"
    VALIDATE_SESSION = "/validate-session"

    # User management
    PROFILE = "/profile"
    CHANGE_PASSWORD = "/change-password"
    FORGOT_PASSWORD = "/forgot-password"
    RESET_PASSWORD = "/reset-password"

    # Two-factor authentication
    TWO_FACTOR_STATUS = "/two-factor/status"
    TWO_FACTOR_SETUP = "/two-factor/setup"
    TWO_FACTOR_VERIFY = "/two-factor/verify"
    TWO_FACTOR_DISABLE = "/two-factor/disable"

    # Device sessions
    SESSIONS = "/sessions"
    SESSIONS_REVOKE_OTHERS = "/sessions/revoke-others"

    # Accounts
    ACCOUNTS = "/accounts"

    # Transactions
    TRANSACTIONS = "/transactions"
    TRANSACTION_PROCESS_CSV = "/transactions/process-csv"
    TRANSACTION_BULK_CREATE = "/transactions/bulk-create"

    # Categories
    CATEGORIES_FOR_TRANSACTION = "/categories/for-transaction"

    @staticmethod
    def session(session_id: int) -> str:
        return f"{Endpoints.SESSIONS}/{session_id}"

    @staticmethod
    def account(account_id: int) -> str:
        return f"{Endpoints.ACCOUNTS}/{account_id}"

    @staticmethod
    def account_transactions(account_id: int) -> str:
        return f"{Endpoints.ACCOUNTS}/{account_id}/transactions"
