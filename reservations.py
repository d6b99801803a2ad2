#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import math
import os
import sys
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

logger = logging.getLogger(__name__)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

T = TypeVar("T")

DELIMITER = ","

ADMINS_FILE = "admins.txt"
PASSENGERS_FILE = "passengers.txt"
FLIGHTS_FILE = "flights.txt"
BOOKINGS_FILE = "bookings.txt"


# ---------------------------
# Errors
# ---------------------------

class ReservationError(ValueError):
    """Base for every failure the core reports back to its caller."""


class DuplicateKeyError(ReservationError):
    pass


class NotFoundError(ReservationError):
    pass


class FlightNotFoundError(NotFoundError):
    pass


class SeatUnavailableError(ReservationError):
    pass


class AlreadyCancelledError(ReservationError):
    pass


class InvalidCredentialsError(ReservationError):
    pass


class PasswordMismatchError(ReservationError):
    pass


class MalformedRecordError(ReservationError):
    """Raised by the decoders; the record store skips the offending line."""


# ---------------------------
# Enums / Data Model
# ---------------------------

class AccountKind(str, Enum):
    PASSENGER = "PASSENGER"
    ADMIN = "ADMIN"


@dataclass
class Flight:
    flight_number: str
    origin: str
    destination: str
    date: str  # "YYYY-MM-DD", not validated
    time: str  # "HH:MM", not validated
    price: float
    total_seats: int


@dataclass
class Booking:
    booking_id: str
    passenger_username: str
    flight_number: str  # soft reference, may outlive the flight
    seat_number: int
    cancelled: bool = False

    @property
    def status(self) -> str:
        return "Cancelled" if self.cancelled else "Active"


@dataclass(frozen=True)
class Account:
    kind: AccountKind
    username: str
    password: str


# ---------------------------
# Record Codec
# ---------------------------

def _split_record(line: str, arity: int, entity: str) -> List[str]:
    fields = line.rstrip("\r\n").split(DELIMITER)
    if len(fields) != arity:
        raise MalformedRecordError(
            f"{entity} record needs {arity} fields, got {len(fields)}: {line.rstrip()!r}"
        )
    return fields


def _decode_line(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedRecordError(f"not valid UTF-8: {e}") from e


def encode_flight(flight: Flight) -> str:
    return DELIMITER.join([
        flight.flight_number,
        flight.origin,
        flight.destination,
        flight.date,
        flight.time,
        repr(float(flight.price)),
        str(flight.total_seats),
    ])


def decode_flight(line: str) -> Flight:
    number, origin, destination, date, time_, price, seats = _split_record(line, 7, "flight")
    if not number:
        raise MalformedRecordError("flight record has an empty flight number")
    try:
        flight = Flight(number, origin, destination, date, time_, float(price), int(seats))
    except ValueError as e:
        raise MalformedRecordError(f"flight {number}: {e}") from e
    if not math.isfinite(flight.price):
        raise MalformedRecordError(f"flight {number}: price is not a finite number")
    return flight


def encode_booking(booking: Booking) -> str:
    return DELIMITER.join([
        booking.booking_id,
        booking.passenger_username,
        booking.flight_number,
        str(booking.seat_number),
        "1" if booking.cancelled else "0",
    ])


def decode_booking(line: str) -> Booking:
    booking_id, username, flight_number, seat, flag = _split_record(line, 5, "booking")
    if not booking_id:
        raise MalformedRecordError("booking record has an empty booking id")
    try:
        seat_number = int(seat)
    except ValueError as e:
        raise MalformedRecordError(f"booking {booking_id}: {e}") from e
    return Booking(booking_id, username, flight_number, seat_number, cancelled=flag == "1")


def encode_account(account: Account) -> str:
    return DELIMITER.join([account.username, account.password])


def account_decoder(kind: AccountKind) -> Callable[[str], Account]:
    def decode(line: str) -> Account:
        username, password = _split_record(line, 2, f"{kind.value.lower()} account")
        if not username:
            raise MalformedRecordError(f"{kind.value.lower()} account has an empty username")
        return Account(kind, username, password)
    return decode


@dataclass(frozen=True)
class RecordCodec(Generic[T]):
    name: str
    encode: Callable[[T], str]
    decode: Callable[[str], T]


FLIGHT_CODEC: RecordCodec[Flight] = RecordCodec("flight", encode_flight, decode_flight)
BOOKING_CODEC: RecordCodec[Booking] = RecordCodec("booking", encode_booking, decode_booking)
PASSENGER_CODEC: RecordCodec[Account] = RecordCodec(
    "passenger", encode_account, account_decoder(AccountKind.PASSENGER)
)
ADMIN_CODEC: RecordCodec[Account] = RecordCodec(
    "admin", encode_account, account_decoder(AccountKind.ADMIN)
)


# ---------------------------
# Record Store
# ---------------------------

class RecordStore(Generic[T]):
    """One flat file of newline-delimited records for a single entity type."""

    def __init__(self, path: str, codec: RecordCodec[T]) -> None:
        self.path = path
        self.codec = codec

    def load_all(self) -> List[T]:
        """
        Decode every line of the backing file. A missing file is an empty
        store; malformed lines are logged and skipped.
        """
        if not os.path.exists(self.path):
            logger.debug("no %s file at %s yet", self.codec.name, self.path)
            return []

        records: List[T] = []
        with open(self.path, "rb") as f:
            for lineno, raw in enumerate(f, start=1):
                try:
                    records.append(self.codec.decode(_decode_line(raw)))
                except MalformedRecordError as e:
                    logger.warning("skipping line %d of %s: %s", lineno, self.path, e)
        logger.debug("loaded %d %s record(s) from %s", len(records), self.codec.name, self.path)
        return records

    def save_all(self, records: Iterable[T]) -> None:
        """Rewrite the whole file, one record per line, in iteration order."""
        tmp = f"{self.path}.tmp"
        count = 0
        with open(tmp, "w", encoding="utf-8", newline="\n") as f:
            for record in records:
                f.write(self.codec.encode(record) + "\n")
                count += 1
        os.replace(tmp, self.path)
        logger.debug("wrote %d %s record(s) to %s", count, self.codec.name, self.path)


@dataclass(frozen=True)
class DataFiles:
    data_dir: str = "."

    @property
    def admins(self) -> str:
        return os.path.join(self.data_dir, ADMINS_FILE)

    @property
    def passengers(self) -> str:
        return os.path.join(self.data_dir, PASSENGERS_FILE)

    @property
    def flights(self) -> str:
        return os.path.join(self.data_dir, FLIGHTS_FILE)

    @property
    def bookings(self) -> str:
        return os.path.join(self.data_dir, BOOKINGS_FILE)


# ---------------------------
# Catalog (flights)
# ---------------------------

class Catalog:
    def __init__(self, store: RecordStore[Flight]) -> None:
        self.store = store
        self.flights: Dict[str, Flight] = {}
        for flight in store.load_all():
            if flight.flight_number in self.flights:
                logger.warning("duplicate flight %s in %s; keeping the first", flight.flight_number, store.path)
                continue
            self.flights[flight.flight_number] = flight

    def save(self) -> None:
        self.store.save_all(self.flights.values())

    def add(self, flight: Flight) -> Flight:
        if flight.flight_number in self.flights:
            raise DuplicateKeyError(f"Flight number already exists: {flight.flight_number}")
        self.flights[flight.flight_number] = flight
        self.save()
        logger.info("added flight %s %s->%s", flight.flight_number, flight.origin, flight.destination)
        return flight

    def remove(self, flight_number: str) -> Flight:
        """Delete a flight. Bookings that reference it are left as they are."""
        if flight_number not in self.flights:
            raise FlightNotFoundError(f"Flight number not found: {flight_number}")
        flight = self.flights.pop(flight_number)
        self.save()
        logger.info("removed flight %s", flight_number)
        return flight

    def find(self, flight_number: str) -> Flight:
        flight = self.flights.get(flight_number)
        if flight is None:
            raise FlightNotFoundError(f"Flight not found: {flight_number}")
        return flight

    def list_flights(self) -> List[Flight]:
        return list(self.flights.values())

    def search(self, origin: str = "", destination: str = "", date: str = "") -> List[Flight]:
        # blank filter matches anything; otherwise exact match
        results: List[Flight] = []
        for f in self.flights.values():
            if origin and f.origin != origin:
                continue
            if destination and f.destination != destination:
                continue
            if date and f.date != date:
                continue
            results.append(f)
        return results


# ---------------------------
# Ledger (bookings)
# ---------------------------

class Ledger:
    """
    Owns every booking ever made and enforces that a seat on a flight is held
    by at most one active booking.

    Booking ids are "<username>_<flight>_<n>" where n comes from a counter held
    here. The counter is not persisted, so a restarted process may hand out an
    id that an earlier run already used.
    """

    def __init__(self, store: RecordStore[Booking], catalog: Catalog, counter: int = 0) -> None:
        self.store = store
        self.catalog = catalog
        self.bookings: List[Booking] = store.load_all()
        self.counter = counter
        self._lock = threading.RLock()

    def save(self) -> None:
        self.store.save_all(self.bookings)

    def _next_booking_id(self, username: str, flight_number: str) -> str:
        self.counter += 1
        return f"{username}_{flight_number}_{self.counter}"

    def is_seat_available(self, flight_number: str, seat_number: int) -> bool:
        with self._lock:
            try:
                flight = self.catalog.find(flight_number)
            except FlightNotFoundError:
                return False
            if seat_number < 1 or seat_number > flight.total_seats:
                return False

            for b in self.bookings:
                if not b.cancelled and b.flight_number == flight_number and b.seat_number == seat_number:
                    return False
            return True

    def available_seats(self, flight_number: str) -> List[int]:
        with self._lock:
            flight = self.catalog.find(flight_number)
            taken = {
                b.seat_number
                for b in self.bookings
                if not b.cancelled and b.flight_number == flight_number
            }
            return [s for s in range(1, flight.total_seats + 1) if s not in taken]

    def book(self, username: str, flight_number: str, seat_number: int) -> str:
        # check and append under one lock so two callers can't both see the seat free
        with self._lock:
            self.catalog.find(flight_number)
            if not self.is_seat_available(flight_number, seat_number):
                raise SeatUnavailableError(
                    f"Seat {seat_number} on flight {flight_number} is not available or invalid."
                )
            booking = Booking(
                booking_id=self._next_booking_id(username, flight_number),
                passenger_username=username,
                flight_number=flight_number,
                seat_number=seat_number,
            )
            self.bookings.append(booking)
            self.save()

        logger.info("booked %s seat %d for %s as %s", flight_number, seat_number, username, booking.booking_id)
        return booking.booking_id

    def cancel(self, booking_id: str, username: str) -> Booking:
        with self._lock:
            for b in self.bookings:
                if b.booking_id == booking_id and b.passenger_username == username:
                    booking = b
                    break
            else:
                raise NotFoundError(f"Booking ID not found: {booking_id}")

            if booking.cancelled:
                raise AlreadyCancelledError(f"Booking already cancelled: {booking_id}")
            booking.cancelled = True
            self.save()

        logger.info("cancelled booking %s", booking_id)
        return booking

    def find_by_passenger(self, username: str) -> List[Booking]:
        return [b for b in self.bookings if b.passenger_username == username]


# ---------------------------
# Directory (accounts)
# ---------------------------

def check_credentials(accounts: Dict[str, Account], username: str, password: str) -> Optional[Account]:
    account = accounts.get(username)
    if account is not None and account.password == password:
        return account
    return None


class Directory:
    def __init__(self, passenger_store: RecordStore[Account], admin_store: RecordStore[Account]) -> None:
        self.stores: Dict[AccountKind, RecordStore[Account]] = {
            AccountKind.PASSENGER: passenger_store,
            AccountKind.ADMIN: admin_store,
        }
        self.accounts: Dict[AccountKind, Dict[str, Account]] = {
            kind: self._load(kind) for kind in AccountKind
        }

    def _load(self, kind: AccountKind) -> Dict[str, Account]:
        accounts: Dict[str, Account] = {}
        for account in self.stores[kind].load_all():
            if account.username in accounts:
                logger.warning("duplicate %s account %s; keeping the first", kind.value.lower(), account.username)
                continue
            accounts[account.username] = account
        return accounts

    def save(self, kind: Optional[AccountKind] = None) -> None:
        kinds = [kind] if kind is not None else list(AccountKind)
        for k in kinds:
            self.stores[k].save_all(self.accounts[k].values())

    @property
    def admin_setup_required(self) -> bool:
        return not self.accounts[AccountKind.ADMIN]

    def find(self, kind: AccountKind, username: str) -> Optional[Account]:
        return self.accounts[kind].get(username)

    def register(self, username: str, password: str) -> Account:
        passengers = self.accounts[AccountKind.PASSENGER]
        if username in passengers:
            raise DuplicateKeyError(f"Username already exists: {username}")
        account = Account(AccountKind.PASSENGER, username, password)
        passengers[username] = account
        self.save(AccountKind.PASSENGER)
        logger.info("registered passenger %s", username)
        return account

    def authenticate(self, kind: AccountKind, username: str, password: str) -> Account:
        account = check_credentials(self.accounts[kind], username, password)
        if account is None:
            raise InvalidCredentialsError("Invalid username or password.")
        return account

    def provision_admin(self, username: str, password: str, confirmation: str) -> Account:
        """Create the single admin account on first run."""
        if password != confirmation:
            raise PasswordMismatchError("Passwords do not match.")
        if not self.admin_setup_required:
            raise DuplicateKeyError("An admin account already exists.")
        account = Account(AccountKind.ADMIN, username, password)
        self.accounts[AccountKind.ADMIN][username] = account
        self.save(AccountKind.ADMIN)
        logger.info("provisioned admin %s", username)
        return account


# ---------------------------
# Core Service
# ---------------------------

class ReservationSystem:
    def __init__(self, catalog: Catalog, ledger: Ledger, directory: Directory) -> None:
        self.catalog = catalog
        self.ledger = ledger
        self.directory = directory

    @classmethod
    def open(cls, data_dir: str = ".", counter: int = 0) -> ReservationSystem:
        files = DataFiles(data_dir)
        os.makedirs(data_dir, exist_ok=True)
        directory = Directory(
            RecordStore(files.passengers, PASSENGER_CODEC),
            RecordStore(files.admins, ADMIN_CODEC),
        )
        catalog = Catalog(RecordStore(files.flights, FLIGHT_CODEC))
        ledger = Ledger(RecordStore(files.bookings, BOOKING_CODEC), catalog, counter=counter)
        return cls(catalog, ledger, directory)

    def save_all(self) -> None:
        self.directory.save()
        self.catalog.save()
        self.ledger.save()


# ---------------------------
# Rendering
# ---------------------------

def flight_table(flights: List[Flight], title: Optional[str] = None) -> Table:
    table = Table(title=title, header_style="bold cyan")
    table.add_column("Flight No")
    table.add_column("Origin")
    table.add_column("Destination")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Price", justify="right")
    table.add_column("Seats", justify="right")
    for f in flights:
        table.add_row(
            escape(f.flight_number),
            escape(f.origin),
            escape(f.destination),
            escape(f.date),
            escape(f.time),
            f"{f.price:.2f}",
            str(f.total_seats),
        )
    return table


def booking_table(bookings: List[Booking]) -> Table:
    table = Table(header_style="bold magenta")
    table.add_column("Booking ID")
    table.add_column("Flight No")
    table.add_column("Seat", justify="right")
    table.add_column("Status")
    for b in bookings:
        colour = "red" if b.cancelled else "green"
        table.add_row(
            escape(b.booking_id),
            escape(b.flight_number),
            str(b.seat_number),
            f"[{colour}]{b.status}[/{colour}]",
        )
    return table


def format_seat_grid(total_seats: int, available: List[int], per_row: int = 10) -> str:
    free = set(available)
    out: List[str] = []
    for start in range(1, total_seats + 1, per_row):
        end = min(start + per_row - 1, total_seats)
        marks = ["O" if s in free else "X" for s in range(start, end + 1)]
        out.append(f"{start:>4}-{end:<4} {' '.join(marks)}")
    out.append("")
    out.append("Legend: O=AVAILABLE, X=BOOKED")
    return "\n".join(out)


# ---------------------------
# Console Session
# ---------------------------

class Session:
    """Interactive role and menu loop driving the core from the console."""

    def __init__(self, system: ReservationSystem, out: Optional[Console] = None) -> None:
        self.system = system
        self.console = out if out is not None else console

    # --- input helpers ---

    def _ask(self, prompt: str, password: bool = False) -> str:
        return Prompt.ask(prompt, console=self.console, password=password)

    def _ask_text(self, prompt: str, password: bool = False) -> str:
        # leading/trailing blanks dropped; empty answers re-asked
        while True:
            value = self._ask(prompt, password=password).strip()
            if value:
                return value
            self._error("Input cannot be empty.")

    def _ask_int(self, prompt: str, min_value: Optional[int] = None, max_value: Optional[int] = None) -> int:
        while True:
            try:
                value = int(self._ask(prompt).strip())
            except ValueError:
                value = None
            if value is None or (min_value is not None and value < min_value) or (
                max_value is not None and value > max_value
            ):
                self._error("Invalid input. Please enter a valid number.")
                continue
            return value

    def _ask_float(self, prompt: str, min_value: Optional[float] = None) -> float:
        while True:
            try:
                value = float(self._ask(prompt).strip())
            except ValueError:
                value = None
            if value is None or not math.isfinite(value) or (min_value is not None and value < min_value):
                self._error("Invalid input. Please enter a valid decimal number.")
                continue
            return value

    def _ok(self, message: str) -> None:
        self.console.print(message, style="green", markup=False)

    def _warn(self, message: str) -> None:
        self.console.print(message, style="yellow", markup=False)

    def _error(self, message: str) -> None:
        self.console.print(message, style="red", markup=False)

    # --- first run ---

    def first_run_admin_setup(self) -> Account:
        self._warn("=== First Time Setup for Admin Account ===")
        username = self._ask_text("Set Admin Username")
        while True:
            password = self._ask("Set Admin Password", password=True)
            confirmation = self._ask("Confirm Admin Password", password=True)
            try:
                account = self.system.directory.provision_admin(username, password, confirmation)
            except PasswordMismatchError:
                self._error("Passwords do not match. Please try again.")
                continue
            break
        self._ok("Admin account created successfully! Please restart the program to login.")
        return account

    # --- top level ---

    def run(self) -> None:
        while True:
            self.console.print("Select Role:", style="bold yellow")
            self.console.print("1. Admin\n2. Passenger\n3. Exit", style="yellow")
            choice = self._ask_int("Enter choice", 1, 3)
            if choice == 1:
                self.admin_flow()
            elif choice == 2:
                self.passenger_flow()
            else:
                self.console.print("Good Bye!", style="bold cyan")
                return
            self.console.print()

    def _login(self, kind: AccountKind) -> Optional[Account]:
        username = self._ask_text("Username")
        password = self._ask("Password", password=True)
        try:
            account = self.system.directory.authenticate(kind, username, password)
        except InvalidCredentialsError:
            self._error("Login failed! Invalid username or password.")
            return None
        self._ok(f"Login successful! Welcome {kind.value.title()} {username}")
        return account

    # --- admin ---

    def admin_flow(self) -> None:
        self.console.print("\n--- Admin Login ---", style="bold cyan")
        if self._login(AccountKind.ADMIN) is not None:
            self.admin_menu()

    def admin_menu(self) -> None:
        while True:
            self.console.print("\n--- Admin Menu ---", style="bold magenta")
            self.console.print("1. Add Flight\n2. View All Flights\n3. Remove Flight\n4. Logout", style="magenta")
            choice = self._ask_int("Enter choice", 1, 4)
            if choice == 1:
                self.add_flight()
            elif choice == 2:
                self.view_flights()
            elif choice == 3:
                self.remove_flight()
            else:
                self.console.print("Logging out from Admin account.", style="cyan")
                return

    def add_flight(self) -> None:
        flight = Flight(
            flight_number=self._ask_text("Enter Flight Number"),
            origin=self._ask_text("Enter Origin"),
            destination=self._ask_text("Enter Destination"),
            date=self._ask_text("Enter Date (YYYY-MM-DD)"),
            time=self._ask_text("Enter Time (HH:MM)"),
            price=self._ask_float("Enter Price", min_value=0),
            total_seats=self._ask_int("Enter Total Seats", min_value=1),
        )
        try:
            self.system.catalog.add(flight)
        except DuplicateKeyError:
            self._error("Flight number already exists! Cannot add.")
            return
        self._ok("Flight added successfully.")

    def view_flights(self) -> None:
        flights = self.system.catalog.list_flights()
        if not flights:
            self._warn("No flights available.")
            return
        self.console.print(flight_table(flights, title="All Flights"))

    def remove_flight(self) -> None:
        if not self.system.catalog.list_flights():
            self._warn("No flights available to remove.")
            return
        flight_number = self._ask_text("Enter Flight Number to remove")
        try:
            self.system.catalog.remove(flight_number)
        except NotFoundError:
            self._error("Flight number not found.")
            return
        self._ok("Flight removed successfully.")

    # --- passenger ---

    def passenger_flow(self) -> None:
        while True:
            self.console.print("\n--- Passenger Menu ---", style="bold cyan")
            self.console.print("1. Register\n2. Login\n3. Back to Role Selection", style="cyan")
            choice = self._ask_int("Enter choice", 1, 3)
            if choice == 1:
                self.register()
            elif choice == 2:
                account = self._login(AccountKind.PASSENGER)
                if account is not None:
                    self.passenger_menu(account)
            else:
                return

    def register(self) -> None:
        username = self._ask_text("Enter desired username")
        if self.system.directory.find(AccountKind.PASSENGER, username) is not None:
            self._error("Username already exists! Please try login or choose another username.")
            return
        password = self._ask_text("Enter password", password=True)
        try:
            self.system.directory.register(username, password)
        except DuplicateKeyError:
            self._error("Username already exists! Please try login or choose another username.")
            return
        self._ok("Registration successful! You can now login.")

    def passenger_menu(self, account: Account) -> None:
        while True:
            self.console.print("\n--- Passenger Menu ---", style="bold cyan")
            self.console.print(
                "1. Search Flights\n2. Book Ticket\n3. Cancel Booking\n"
                "4. View Booking History\n5. View Flights\n6. Logout",
                style="cyan",
            )
            choice = self._ask_int("Enter choice", 1, 6)
            if choice == 1:
                self.search_flights()
            elif choice == 2:
                self.book_ticket(account)
            elif choice == 3:
                self.cancel_booking(account)
            elif choice == 4:
                self.view_booking_history(account)
            elif choice == 5:
                self.view_flights()
            else:
                self.console.print("Logging out from Passenger account.", style="cyan")
                return

    def search_flights(self) -> None:
        origin = self._ask("Enter Origin (leave blank for any)")
        destination = self._ask("Enter Destination (leave blank for any)")
        date = self._ask("Enter Date (YYYY-MM-DD, leave blank for any)")
        flights = self.system.catalog.search(origin.strip(), destination.strip(), date.strip())
        if not flights:
            self._warn("No matching flights found.")
            return
        self.console.print(flight_table(flights))

    def book_ticket(self, account: Account) -> None:
        flight_number = self._ask_text("Enter Flight Number to book")
        try:
            flight = self.system.catalog.find(flight_number)
        except FlightNotFoundError:
            self._error("Flight not found.")
            return

        seat = self._ask_int(f"Enter seat number to book (1 - {flight.total_seats})", 1, flight.total_seats)
        try:
            booking_id = self.system.ledger.book(account.username, flight_number, seat)
        except ReservationError:
            self._error("Seat not available or invalid.")
            return
        self._ok(f"Booking successful! Your Booking ID is: {booking_id}")

    def cancel_booking(self, account: Account) -> None:
        booking_id = self._ask_text("Enter Booking ID to cancel")
        try:
            self.system.ledger.cancel(booking_id, account.username)
        except AlreadyCancelledError:
            self._warn("Booking already cancelled.")
            return
        except NotFoundError:
            self._error("Booking ID not found.")
            return
        self._ok("Booking cancelled successfully.")

    def view_booking_history(self, account: Account) -> None:
        bookings = self.system.ledger.find_by_passenger(account.username)
        self.console.print("\nYour Bookings:", style="bold cyan")
        if not bookings:
            self._warn("No bookings found.")
            return
        self.console.print(booking_table(bookings))


# ---------------------------
# CLI
# ---------------------------

def print_flights(flights: List[Flight]) -> None:
    if not flights:
        console.print("No flights found.")
        return
    console.print(flight_table(flights))


def _account(args: argparse.Namespace, system: ReservationSystem, kind: AccountKind) -> Account:
    return system.directory.authenticate(kind, args.username, args.password)


def cmd_menu(args: argparse.Namespace, system: ReservationSystem) -> int:
    try:
        Session(system).run()
    except (EOFError, KeyboardInterrupt):
        console.print()
    return 0


def cmd_flights(args: argparse.Namespace, system: ReservationSystem) -> int:
    print_flights(system.catalog.list_flights())
    return 0


def cmd_search(args: argparse.Namespace, system: ReservationSystem) -> int:
    flights = system.catalog.search(
        origin=args.origin or "",
        destination=args.destination or "",
        date=args.date or "",
    )
    print_flights(flights)
    return 0


def cmd_seats(args: argparse.Namespace, system: ReservationSystem) -> int:
    flight = system.catalog.find(args.flight_number)
    available = system.ledger.available_seats(flight.flight_number)
    console.print(f"Flight: {flight.flight_number}", markup=False)
    console.print(f"available={len(available)}/{flight.total_seats}")
    console.print(format_seat_grid(flight.total_seats, available), markup=False)
    return 0


def cmd_register(args: argparse.Namespace, system: ReservationSystem) -> int:
    account = system.directory.register(args.username, args.password)
    console.print("PASSENGER REGISTERED")
    console.print(f"username={account.username}", markup=False)
    return 0


def cmd_book(args: argparse.Namespace, system: ReservationSystem) -> int:
    account = _account(args, system, AccountKind.PASSENGER)
    booking_id = system.ledger.book(account.username, args.flight_number, args.seat)
    console.print("BOOKING CREATED")
    console.print(f"booking_id={booking_id}", markup=False)
    console.print(f"flight_number={args.flight_number}", markup=False)
    console.print(f"seat={args.seat}")
    return 0


def cmd_cancel(args: argparse.Namespace, system: ReservationSystem) -> int:
    account = _account(args, system, AccountKind.PASSENGER)
    booking = system.ledger.cancel(args.booking_id, account.username)
    console.print("BOOKING CANCELLED")
    console.print(f"booking_id={booking.booking_id}", markup=False)
    console.print(f"flight_number={booking.flight_number}", markup=False)
    console.print(f"seat={booking.seat_number}")
    return 0


def cmd_history(args: argparse.Namespace, system: ReservationSystem) -> int:
    account = _account(args, system, AccountKind.PASSENGER)
    bookings = system.ledger.find_by_passenger(account.username)
    if not bookings:
        console.print("No bookings found.")
        return 0
    console.print(booking_table(bookings))
    return 0


def cmd_admin_add_flight(args: argparse.Namespace, system: ReservationSystem) -> int:
    _account(args, system, AccountKind.ADMIN)
    flight = system.catalog.add(Flight(
        flight_number=args.flight_number,
        origin=args.origin,
        destination=args.destination,
        date=args.date,
        time=args.time,
        price=args.price,
        total_seats=args.seats,
    ))
    console.print("FLIGHT ADDED")
    console.print(f"flight_number={flight.flight_number}", markup=False)
    console.print(f"route={flight.origin}->{flight.destination}", markup=False)
    console.print(f"depart={flight.date} {flight.time}", markup=False)
    console.print(f"price={flight.price:.2f}")
    console.print(f"seats={flight.total_seats}")
    return 0


def cmd_admin_remove_flight(args: argparse.Namespace, system: ReservationSystem) -> int:
    _account(args, system, AccountKind.ADMIN)
    flight = system.catalog.remove(args.flight_number)
    console.print("FLIGHT REMOVED")
    console.print(f"flight_number={flight.flight_number}", markup=False)
    return 0


def _non_negative_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {raw}")
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError(f"not a finite number: {raw}")
    if value < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return value


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {raw}")
    if value < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return value


def _add_credentials(p: argparse.ArgumentParser) -> None:
    p.add_argument("--username", required=True)
    p.add_argument("--password", required=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="airline-reservations", description="Airline reservation system")
    parser.add_argument(
        "--data-dir",
        default=".",
        help="Directory holding admins.txt, passengers.txt, flights.txt and bookings.txt (default: .)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_menu = sub.add_parser("menu", help="Interactive admin/passenger menus")
    p_menu.set_defaults(func=cmd_menu)

    p_flights = sub.add_parser("flights", help="List all flights")
    p_flights.set_defaults(func=cmd_flights)

    p_search = sub.add_parser("search", help="Search flights (exact match, blank = any)")
    p_search.add_argument("--origin", default=None)
    p_search.add_argument("--destination", default=None)
    p_search.add_argument("--date", default=None, help='Exact match "YYYY-MM-DD"')
    p_search.set_defaults(func=cmd_search)

    p_seats = sub.add_parser("seats", help="View seat availability for a flight")
    p_seats.add_argument("flight_number")
    p_seats.set_defaults(func=cmd_seats)

    p_register = sub.add_parser("register", help="Register a passenger account")
    _add_credentials(p_register)
    p_register.set_defaults(func=cmd_register)

    p_book = sub.add_parser("book", help="Book a seat on a flight")
    p_book.add_argument("flight_number")
    p_book.add_argument("--seat", type=int, required=True)
    _add_credentials(p_book)
    p_book.set_defaults(func=cmd_book)

    p_cancel = sub.add_parser("cancel", help="Cancel one of your bookings")
    p_cancel.add_argument("booking_id")
    _add_credentials(p_cancel)
    p_cancel.set_defaults(func=cmd_cancel)

    p_history = sub.add_parser("history", help="Show your booking history")
    _add_credentials(p_history)
    p_history.set_defaults(func=cmd_history)

    p_admin_add = sub.add_parser("admin-add-flight", help="Admin: add a flight")
    p_admin_add.add_argument("--flight-number", required=True)
    p_admin_add.add_argument("--origin", required=True)
    p_admin_add.add_argument("--destination", required=True)
    p_admin_add.add_argument("--date", required=True, help="YYYY-MM-DD (not validated)")
    p_admin_add.add_argument("--time", required=True, help="HH:MM (not validated)")
    p_admin_add.add_argument("--price", type=_non_negative_float, required=True)
    p_admin_add.add_argument("--seats", type=_positive_int, required=True, help="Total seat count")
    _add_credentials(p_admin_add)
    p_admin_add.set_defaults(func=cmd_admin_add_flight)

    p_admin_remove = sub.add_parser("admin-remove-flight", help="Admin: remove a flight")
    p_admin_remove.add_argument("flight_number")
    _add_credentials(p_admin_remove)
    p_admin_remove.set_defaults(func=cmd_admin_remove_flight)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    system = ReservationSystem.open(args.data_dir)

    # first run: create the admin, then exit so the operator restarts cleanly
    if system.directory.admin_setup_required:
        try:
            Session(system).first_run_admin_setup()
        except (EOFError, KeyboardInterrupt):
            err_console.print("ERROR: admin setup aborted", style="red")
            return 2
        return 0

    try:
        rc = args.func(args, system)
        # orderly shutdown: rewrite every store
        system.save_all()
        return rc
    except ValueError as e:
        err_console.print(f"ERROR: {e}", style="red", markup=False)
        return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
