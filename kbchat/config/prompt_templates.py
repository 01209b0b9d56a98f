"""
kbchat - Prompt Templates & Action Metadata
============================================
Centralised text for the conversational runtime.  Everything the
language model reads about itself or its tools lives here so it can be
reviewed and versioned independently of application logic.

Exports
-------
SYSTEM_PROMPT, FETCH_ARTICLES_ACTION_NAME, FETCH_ARTICLES_ACTION_DESCRIPTION,
FETCH_ARTICLES_QUERY_DESCRIPTION, RETRIEVAL_FAILURE_MESSAGE,
UNKNOWN_ACTION_MESSAGE, INVALID_ARGUMENTS_MESSAGE, MALFORMED_ACTION_CALL_MESSAGE.
"""

# ══════════════════════════════════════════════════════════════════════
#  RETRIEVAL ACTION
# ══════════════════════════════════════════════════════════════════════
# The name is part of the contract with frontends that render action
# progress; do not rename without updating them.

FETCH_ARTICLES_ACTION_NAME: str = "FetchKnowledgebaseArticles"

FETCH_ARTICLES_ACTION_DESCRIPTION: str = "Fetch relevant knowledge base articles based on a user query"

FETCH_ARTICLES_QUERY_DESCRIPTION: str = "The User query for the knowledge base index search to perform"

RETRIEVAL_FAILURE_MESSAGE: str = "Failed to fetch knowledge base articles."

UNKNOWN_ACTION_MESSAGE: str = "Unknown action '{name}'. Available actions: {available}."

INVALID_ARGUMENTS_MESSAGE: str = "Invalid arguments: a 'query' string is required."

MALFORMED_ACTION_CALL_MESSAGE: str = "Could not parse the arguments for action '{name}': {error}. Retry with valid JSON arguments."


# ══════════════════════════════════════════════════════════════════════
#  SYSTEM PROMPT
# ══════════════════════════════════════════════════════════════════════

SYSTEM_PROMPT: str = f"""You are a helpful assistant for a knowledge base of articles.

Rules:
1. When the user asks about a topic that the knowledge base may cover, call
   the `{FETCH_ARTICLES_ACTION_NAME}` action with a concise search query
   before answering.
2. Answer from the returned articles. Quote or paraphrase them; do not
   invent facts that are not in the articles.
3. If no relevant article is returned, say so plainly and offer general
   guidance only if the user asks for it.
4. If the action reports a failure, tell the user the knowledge base is
   temporarily unavailable.
5. Keep answers short and use Markdown for lists and emphasis.""".strip()
