"""
kbchat - Knowledge Base Articles
=================================
The static document set embedded into the vector index at startup.

Each entry is a ``Document`` with a stable ``id``; the id becomes the
vector record id, so changing it creates a new record instead of
updating the old one.
"""

from __future__ import annotations

from kbchat.src.core.indexer import Document

POSTS: tuple[Document, ...] = (
    Document(
        id=1,
        content=(
            "Getting started with your account: after signing up, confirm your email address "
            "from the link we send you, then complete your profile under Settings > Profile. "
            "You can invite teammates from Settings > Members once your email is confirmed."
        ),
    ),
    Document(
        id=2,
        content=(
            "Resetting your password: click 'Forgot password' on the sign-in page and enter "
            "your account email. The reset link is valid for 30 minutes. If the email does not "
            "arrive, check your spam folder and make sure the address matches your account."
        ),
    ),
    Document(
        id=3,
        content=(
            "Billing and invoices: invoices are issued on the first day of each billing cycle "
            "and can be downloaded as PDF from Settings > Billing. Payment methods can be "
            "updated at any time; changes apply to the next invoice."
        ),
    ),
    Document(
        id=4,
        content=(
            "Changing your plan: upgrades take effect immediately and are prorated for the "
            "remainder of the cycle. Downgrades take effect at the start of the next cycle. "
            "Usage above the limits of the new plan is billed as overage."
        ),
    ),
    Document(
        id=5,
        content=(
            "Exporting your data: workspace owners can export all projects as a ZIP archive "
            "from Settings > Data. Exports include documents, comments and attachments, and "
            "are available for download for seven days."
        ),
    ),
    Document(
        id=6,
        content=(
            "Two-factor authentication: enable 2FA from Settings > Security using any TOTP "
            "authenticator app. Store the recovery codes somewhere safe; each code can be "
            "used once if you lose access to your device."
        ),
    ),
    Document(
        id=7,
        content=(
            "API access: personal API tokens are created under Settings > Developer. Tokens "
            "inherit the permissions of the user who created them and can be revoked at any "
            "time. Requests are rate limited to 600 per minute per token."
        ),
    ),
    Document(
        id=8,
        content=(
            "Deleting your account: account deletion is permanent and removes all personal "
            "data within 30 days. Workspace owners must transfer ownership or delete the "
            "workspace before their account can be deleted."
        ),
    ),
    Document(
        id=9,
        content=(
            "Integrations: connect Slack, GitHub and Google Drive from Settings > Integrations. "
            "Each integration can be limited to specific projects, and disconnecting an "
            "integration stops synchronisation without deleting previously imported items."
        ),
    ),
    Document(
        id=10,
        content=(
            "Contacting support: use the in-app chat or email support@example.com. Include "
            "your workspace name and a short description of the problem. Paid plans receive "
            "a first response within one business day."
        ),
    ),
)
