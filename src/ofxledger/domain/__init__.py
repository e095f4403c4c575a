"""Domain layer for ofxledger application."""

__all__ = [
    "AccountService",
    "CategoryService",
    "StatementImportService",
    "ImportCommitService",
]


# Import services lazily; database.base imports domain.entities
def __getattr__(name):
    if name == "AccountService":
        from ofxledger.domain.account import AccountService
        return AccountService
    if name == "CategoryService":
        from ofxledger.domain.category import CategoryService
        return CategoryService
    if name == "StatementImportService":
        from ofxledger.domain.statement_import import StatementImportService
        return StatementImportService
    if name == "ImportCommitService":
        from ofxledger.domain.import_commit import ImportCommitService
        return ImportCommitService
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
