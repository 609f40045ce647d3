"""ZSA bundle configuration constants.

Keep this file aligned with the wire layout in `encoding.py` and the
domain-separation contexts used by `crypto/hashes.py`.
"""

# Bundle limits
MIN_ACTIONS = 2
MAX_ACTIONS = 500
MAX_BURN_ENTRIES = 500
MAX_PROOF_SIZE = 1 << 20

# Values
MAX_NOTE_VALUE = (1 << 64) - 1
MAX_VALUE_SUM = MAX_NOTE_VALUE
I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1

# Encodings
POINT_SIZE = 32
SCALAR_SIZE = 32
SIGNATURE_SIZE = 64
DIVERSIFIER_SIZE = 11
RAW_ADDRESS_SIZE = DIVERSIFIER_SIZE + POINT_SIZE
MEMO_SIZE = 512
AEAD_TAG_SIZE = 16
NOTE_PLAINTEXT_SIZE = 1 + DIVERSIFIER_SIZE + 8 + 32 + POINT_SIZE + MEMO_SIZE  # 596
ENC_CIPHERTEXT_SIZE = NOTE_PLAINTEXT_SIZE + AEAD_TAG_SIZE  # 612
OUT_PLAINTEXT_SIZE = POINT_SIZE + SCALAR_SIZE
OUT_CIPHERTEXT_SIZE = OUT_PLAINTEXT_SIZE + AEAD_TAG_SIZE  # 80
ACTION_SIZE = 5 * POINT_SIZE + ENC_CIPHERTEXT_SIZE + OUT_CIPHERTEXT_SIZE + SIGNATURE_SIZE
MAX_ASSET_DESCRIPTION_SIZE = 512

# Ciphertext split points used by the bundle digest
COMPACT_CIPHERTEXT_SIZE = 84
MEMO_CIPHERTEXT_END = COMPACT_CIPHERTEXT_SIZE + MEMO_SIZE

NOTE_PLAINTEXT_LEAD_BYTE = 0x03
DEFAULT_MEMO_LEAD_BYTE = 0xF6

# PRF^expand domain bytes
PRF_EXPAND_ASK = 0x06
PRF_EXPAND_NK = 0x07
PRF_EXPAND_ESK = 0x04
PRF_EXPAND_RCM = 0x05
PRF_EXPAND_PSI = 0x09

# Hash domains (BLAKE3 derive-key contexts)
DOMAIN_PRF_EXPAND = "zsa_bundle 2024 PrfExpand"
DOMAIN_PRF_NF = "zsa_bundle 2024 PrfNf"
DOMAIN_PRF_OCK = "zsa_bundle 2024 PrfOck"
DOMAIN_HASH_TO_CURVE = "zsa_bundle 2024 HashToCurve"
DOMAIN_REDPALLAS = "zsa_bundle 2024 RedPallasH"
DOMAIN_NOTE_COMMIT = "zsa_bundle 2024 NoteCommit"
DOMAIN_COMMIT_IVK = "zsa_bundle 2024 CommitIvk"
DOMAIN_ASSET_DIGEST = "zsa_bundle 2024 AssetDigest"
DOMAIN_NOTE_KDF = "zsa_bundle 2024 NoteKdf"
DOMAIN_PROOF_TRANSCRIPT = "zsa_bundle 2024 ProofTranscript"

# Hash-to-curve personalizations for fixed generators
GEN_SPEND_AUTH = b"G-SpendAuth"
GEN_VALUE_RANDOMNESS = b"R-ValueCommit"
GEN_NATIVE_ASSET = b"V-NativeAsset"
GEN_ZSA_ASSET = b"V-ZsaAsset"
GEN_NULLIFIER_K = b"K-Nullifier"
GEN_SPLIT_NOTE_L = b"L-SplitNote"
GEN_NOTE_COMMIT_Q = b"Q-NoteCommit"
GEN_NOTE_COMMIT_R = b"R-NoteCommit"
GEN_KEY_DIVERSIFY = b"KeyDiversify"

# Bundle digest personalizations
DIGEST_BUNDLE = "zsa_bundle 2024 BundleHash"
DIGEST_ACTIONS_COMPACT = "zsa_bundle 2024 ActionsCompact"
DIGEST_ACTIONS_MEMOS = "zsa_bundle 2024 ActionsMemos"
DIGEST_ACTIONS_NONCOMPACT = "zsa_bundle 2024 ActionsNonCompact"
DIGEST_BURN = "zsa_bundle 2024 Burn"
DIGEST_AUTH = "zsa_bundle 2024 BundleAuth"
