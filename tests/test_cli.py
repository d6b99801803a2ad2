"""
Pytest tests for the interactive session and the command line entry point.
Run with: pytest tests/test_cli.py -v
"""

import io

import pytest
from rich.console import Console

import reservations
from reservations import AccountKind, Flight, ReservationSystem, Session, main


class ScriptedSession(Session):
    """Session that answers prompts from a list instead of the terminal."""

    def __init__(self, system, answers):
        super().__init__(system, out=Console(file=io.StringIO(), width=160, highlight=False))
        self.answers = list(answers)
        self.prompts = []

    def _ask(self, prompt, password=False):
        self.prompts.append((prompt, password))
        return self.answers.pop(0)

    @property
    def output(self):
        return self.console.file.getvalue()


@pytest.fixture
def system(tmp_path):
    system = ReservationSystem.open(str(tmp_path))
    system.directory.provision_admin("root", "secret", "secret")
    return system


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "admins.txt").write_text("root,secret\n", encoding="utf-8")
    return str(tmp_path)


class TestSession:
    """Menu flows driven by scripted answers."""

    def test_admin_adds_flight_with_retries(self, system):
        session = ScriptedSession(system, [
            "1", "root", "secret",
            "1", "AA1", "NYC", "LAX", "2024-01-01", "10:00",
            "abc", "-1", "199.99",
            "0", "2",
            "2",
            "4",
            "3",
        ])
        session.run()

        assert system.catalog.find("AA1") == Flight("AA1", "NYC", "LAX", "2024-01-01", "10:00", 199.99, 2)
        assert "Invalid input. Please enter a valid decimal number." in session.output
        assert "Invalid input. Please enter a valid number." in session.output
        assert "Flight added successfully." in session.output
        assert "Good Bye!" in session.output
        assert not session.answers

    def test_admin_login_failure(self, system):
        session = ScriptedSession(system, ["1", "root", "wrong", "3"])
        session.run()
        assert "Login failed! Invalid username or password." in session.output
        assert ("Password", True) in session.prompts

    def test_admin_removes_flight(self, system):
        system.catalog.add(Flight("AA1", "NYC", "LAX", "2024-01-01", "10:00", 100.0, 2))
        session = ScriptedSession(system, ["1", "root", "secret", "3", "ZZ9", "3", "AA1", "3", "4", "3"])
        session.run()
        assert "Flight number not found." in session.output
        assert "Flight removed successfully." in session.output
        assert "No flights available to remove." in session.output
        assert system.catalog.list_flights() == []

    def test_passenger_registers_books_and_cancels(self, system):
        system.catalog.add(Flight("AA1", "NYC", "LAX", "2024-01-01", "10:00", 199.99, 2))
        session = ScriptedSession(system, [
            "2",
            "1", "alice", "pw",
            "2", "alice", "pw",
            "1", "NYC", "", "",
            "2", "AA1", "3", "1",
            "2", "AA1", "1",
            "3", "alice_AA1_1",
            "3", "alice_AA1_1",
            "4",
            "6",
            "3",
            "3",
        ])
        session.run()

        out = session.output
        assert "Registration successful! You can now login." in out
        assert "Booking successful! Your Booking ID is: alice_AA1_1" in out
        assert "Seat not available or invalid." in out
        assert "Booking cancelled successfully." in out
        assert "Booking already cancelled." in out
        assert "Cancelled" in out
        assert system.ledger.find_by_passenger("alice")[0].cancelled is True
        assert not session.answers

    def test_duplicate_registration(self, system):
        system.directory.register("alice", "pw")
        session = ScriptedSession(system, ["2", "1", "alice", "3", "3"])
        session.run()
        assert "Username already exists!" in session.output

    def test_book_unknown_flight_and_empty_search(self, system):
        system.directory.register("bob", "pw")
        session = ScriptedSession(system, [
            "2", "2", "bob", "pw",
            "2", "ZZ9",
            "1", "", "", "1999-01-01",
            "4",
            "6", "3", "3",
        ])
        session.run()
        assert "Flight not found." in session.output
        assert "No matching flights found." in session.output
        assert "No bookings found." in session.output

    def test_first_run_admin_setup(self, tmp_path):
        system = ReservationSystem.open(str(tmp_path))
        session = ScriptedSession(system, ["root", "a", "b", "secret", "secret"])
        account = session.first_run_admin_setup()

        assert account.username == "root"
        assert "Passwords do not match. Please try again." in session.output
        assert "Please restart the program to login." in session.output
        assert (tmp_path / "admins.txt").read_text(encoding="utf-8") == "root,secret\n"


class TestMain:
    """One-shot commands through main()."""

    def run(self, data_dir, *args):
        return main(["--data-dir", data_dir, *args])

    def add_flight(self, data_dir, number="AA1", seats="2", price="199.99"):
        return self.run(
            data_dir, "admin-add-flight",
            "--flight-number", number, "--origin", "NYC", "--destination", "LAX",
            "--date", "2024-01-01", "--time", "10:00", "--price", price, "--seats", seats,
            "--username", "root", "--password", "secret",
        )

    def test_first_run_provisions_admin_and_exits(self, tmp_path, monkeypatch, capsys):
        answers = iter(["root", "secret", "secret"])
        monkeypatch.setattr(reservations.Session, "_ask", lambda self, prompt, password=False: next(answers))

        assert main(["--data-dir", str(tmp_path), "flights"]) == 0
        assert (tmp_path / "admins.txt").read_text(encoding="utf-8") == "root,secret\n"
        assert "No flights found." not in capsys.readouterr().out

    def test_booking_workflow(self, data_dir, capsys):
        assert self.add_flight(data_dir) == 0
        assert "FLIGHT ADDED" in capsys.readouterr().out

        assert self.run(data_dir, "register", "--username", "alice", "--password", "pw") == 0
        assert self.run(data_dir, "book", "AA1", "--seat", "1", "--username", "alice", "--password", "pw") == 0
        assert "booking_id=alice_AA1_1" in capsys.readouterr().out

        assert self.run(data_dir, "seats", "AA1") == 0
        assert "available=1/2" in capsys.readouterr().out

        assert self.run(data_dir, "cancel", "alice_AA1_1", "--username", "alice", "--password", "pw") == 0
        assert "BOOKING CANCELLED" in capsys.readouterr().out

        reopened = ReservationSystem.open(data_dir)
        assert reopened.ledger.find_by_passenger("alice")[0].cancelled is True

    def test_errors_exit_with_code_2(self, data_dir, capsys):
        assert self.add_flight(data_dir) == 0
        assert self.add_flight(data_dir) == 2
        assert "ERROR: Flight number already exists: AA1" in capsys.readouterr().err

        assert self.run(data_dir, "register", "--username", "bob", "--password", "pw") == 0
        assert self.run(data_dir, "book", "ZZ9", "--seat", "1", "--username", "bob", "--password", "pw") == 2
        assert "ERROR: Flight not found: ZZ9" in capsys.readouterr().err

        assert self.run(data_dir, "history", "--username", "bob", "--password", "nope") == 2
        assert "Invalid username or password." in capsys.readouterr().err

    def test_passenger_cannot_use_admin_commands(self, data_dir):
        assert self.run(data_dir, "register", "--username", "alice", "--password", "pw") == 0
        assert self.run(
            data_dir, "admin-remove-flight", "AA1", "--username", "alice", "--password", "pw"
        ) == 2

    def test_remove_flight_keeps_history(self, data_dir, capsys):
        self.add_flight(data_dir)
        self.run(data_dir, "register", "--username", "alice", "--password", "pw")
        self.run(data_dir, "book", "AA1", "--seat", "2", "--username", "alice", "--password", "pw")
        assert self.run(
            data_dir, "admin-remove-flight", "AA1", "--username", "root", "--password", "secret"
        ) == 0
        capsys.readouterr()

        assert self.run(data_dir, "history", "--username", "alice", "--password", "pw") == 0
        assert "alice_AA1_1" in capsys.readouterr().out
        system = ReservationSystem.open(data_dir)
        assert system.catalog.list_flights() == []
        assert system.directory.find(AccountKind.PASSENGER, "alice") is not None

    def test_search(self, data_dir, capsys):
        self.add_flight(data_dir, "AA1")
        capsys.readouterr()
        assert self.run(data_dir, "search", "--destination", "SFO") == 0
        assert "No flights found." in capsys.readouterr().out
        assert self.run(data_dir, "search", "--origin", "NYC") == 0
        assert "AA1" in capsys.readouterr().out

    def test_rejects_zero_seats(self, data_dir):
        with pytest.raises(SystemExit):
            self.add_flight(data_dir, seats="0")

    @pytest.mark.parametrize("price", ["nan", "inf", "-inf", "-1"])
    def test_rejects_bad_price(self, data_dir, price):
        with pytest.raises(SystemExit):
            self.add_flight(data_dir, price=price)
        assert ReservationSystem.open(data_dir).catalog.list_flights() == []


class TestSessionInput:
    """Prompt validation in the interactive menus."""

    def test_price_prompt_rejects_non_finite(self, system):
        session = ScriptedSession(system, ["nan", "inf", "-inf", "12.5"])
        assert session._ask_float("Enter Price", min_value=0) == 12.5
        assert session.output.count("Invalid input. Please enter a valid decimal number.") == 3

    def test_blank_answers_are_reasked_and_trimmed(self, system):
        session = ScriptedSession(system, ["2", "1", "", "   ", "  carol  ", "", "pw", "3", "3"])
        session.run()

        assert session.output.count("Input cannot be empty.") == 3
        assert system.directory.find(AccountKind.PASSENGER, "carol") is not None
        assert system.directory.find(AccountKind.PASSENGER, "") is None
        assert not session.answers

    def test_flight_number_is_trimmed(self, system):
        session = ScriptedSession(system, [
            "1", " root ", "secret",
            "1", " AA7 ", "NYC", "LAX", "2024-01-01", "10:00", "99", "3",
            "4", "3",
        ])
        session.run()
        assert system.catalog.find("AA7").total_seats == 3
