from stockfeed.filter.relevance import (
    clean_company_name,
    is_relevant_article,
    significant_terms,
)

__all__ = ["clean_company_name", "is_relevant_article", "significant_terms"]
