"""
HMAC signing for tracking links
"""
import hashlib
import hmac


class Signer:
    """
    Signs canonical strings with the process secret and verifies signatures
    in constant time.
    """

    digestmod = hashlib.sha256
    digest_size = hashlib.sha256().digest_size

    def __init__(self, secret):
        if not secret:
            raise ValueError("Signer requires a non-empty secret")
        self._key = secret.encode('utf-8')

    def _digest(self, message):
        return hmac.new(self._key, message.encode('utf-8'), self.digestmod).digest()

    def sign(self, message):
        """
        Sign a canonical string

        Args:
            message: Canonical string, e.g. "m=<id>|l=0"

        Returns:
            Lowercase hex HMAC-SHA256 (64 chars)
        """
        return self._digest(message).hex()

    def verify(self, message, signature):
        """
        Check a hex signature against a canonical string.

        Never raises: anything missing, non-hex or of the wrong length is
        simply invalid.
        """
        if not message or not signature:
            return False

        if not isinstance(signature, str) or len(signature) != self.digest_size * 2:
            return False

        try:
            provided = bytes.fromhex(signature)
        except ValueError:
            return False

        if len(provided) != self.digest_size:
            return False

        return hmac.compare_digest(self._digest(message), provided)
