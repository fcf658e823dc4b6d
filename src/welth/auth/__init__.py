"""Authentication.

Learn: Sign-in and token issuance belong to the external identity
provider. This package only verifies its session tokens (Bearer header
or the __session cookie) and turns them into an Identity whose subject
is the provider's user id.
"""
