import base58
import pytest
from solders.keypair import Keypair

from solana_wallet_bot.core.keystore import KeyStore
from solana_wallet_bot.db.database import DatabaseManager
from solana_wallet_bot.exceptions import WalletRegistrationError
from solana_wallet_bot.wallets import generate_wallet, import_wallet, main, reset_wallet

KEY = "ab" * 32


@pytest.fixture
def db(tmp_path):
    return DatabaseManager(str(tmp_path / "wallets.db"))


@pytest.fixture
def keystore():
    return KeyStore(KEY)


def secret_of(kp: Keypair) -> str:
    return base58.b58encode(bytes(kp)).decode()


class TestGenerate:

    def test_generated_wallet_is_loadable(self, db, keystore):
        user, kp = generate_wallet(db, keystore, "1001", "alice")
        stored = db.find_user("1001")
        assert stored.wallet_address == str(kp.pubkey()) == user.wallet_address
        assert stored.username == "alice"
        assert keystore.load_keypair(stored.encrypted_private_key).pubkey() == kp.pubkey()

    def test_refuses_second_wallet(self, db, keystore):
        user, _ = generate_wallet(db, keystore, "1001")
        with pytest.raises(WalletRegistrationError):
            generate_wallet(db, keystore, "1001")
        assert db.find_user("1001").wallet_address == user.wallet_address


class TestImport:

    def test_import_base58(self, db, keystore):
        kp = Keypair()
        user = import_wallet(db, keystore, "1001", secret_of(kp))
        assert user.wallet_address == str(kp.pubkey())
        stored = db.find_user("1001")
        assert keystore.load_keypair(stored.encrypted_private_key).pubkey() == kp.pubkey()

    def test_import_replaces_own_wallet(self, db, keystore):
        generate_wallet(db, keystore, "1001")
        kp = Keypair()
        import_wallet(db, keystore, "1001", secret_of(kp))
        assert db.find_user("1001").wallet_address == str(kp.pubkey())

    def test_reimport_same_wallet(self, db, keystore):
        kp = Keypair()
        import_wallet(db, keystore, "1001", secret_of(kp))
        import_wallet(db, keystore, "1001", secret_of(kp))
        assert db.find_user("1001").wallet_address == str(kp.pubkey())

    def test_wallet_owned_by_other_user(self, db, keystore):
        kp = Keypair()
        import_wallet(db, keystore, "1001", secret_of(kp))
        with pytest.raises(WalletRegistrationError):
            import_wallet(db, keystore, "2002", secret_of(kp))
        assert db.find_user("2002") is None

    @pytest.mark.parametrize("secret", ["not-a-key", "[1, 2, 3]", ""])
    def test_invalid_secret(self, db, keystore, secret):
        with pytest.raises(WalletRegistrationError):
            import_wallet(db, keystore, "1001", secret)
        assert db.find_user("1001") is None


class TestReset:

    def test_reset_deletes(self, db, keystore):
        generate_wallet(db, keystore, "1001")
        assert reset_wallet(db, "1001") is True
        assert db.find_user("1001") is None
        assert reset_wallet(db, "1001") is False

    def test_generate_after_reset(self, db, keystore):
        first, _ = generate_wallet(db, keystore, "1001")
        reset_wallet(db, "1001")
        second, _ = generate_wallet(db, keystore, "1001")
        assert second.wallet_address != first.wallet_address


class TestMain:

    @pytest.fixture(autouse=True)
    def env(self, tmp_path, monkeypatch):
        self.db_path = str(tmp_path / "cli.db")
        monkeypatch.setenv("ENCRYPTION_KEY", KEY)
        monkeypatch.setenv("DB_PATH", self.db_path)

    def test_generate_then_reset(self, capsys):
        assert main(["generate", "1001", "--username", "alice"]) == 0
        user = DatabaseManager(self.db_path).find_user("1001")
        assert user.username == "alice"
        assert user.wallet_address in capsys.readouterr().out

        assert main(["reset", "1001"]) == 0
        assert DatabaseManager(self.db_path).find_user("1001") is None

    def test_import(self):
        kp = Keypair()
        assert main(["import", "1001", secret_of(kp)]) == 0
        user = DatabaseManager(self.db_path).find_user("1001")
        assert user.wallet_address == str(kp.pubkey())

    def test_failure_exit_code(self, capsys):
        assert main(["import", "1001", "not-a-key"]) == 1
        assert "Not a valid Solana secret key" in capsys.readouterr().err

    def test_missing_encryption_key(self, monkeypatch):
        monkeypatch.setenv("ENCRYPTION_KEY", "")
        assert main(["generate", "1001"]) == 1
