"""
Validated: report every problem at once instead of stopping at the first.

Run: python examples/validation.py
"""
import re
from dataclasses import dataclass

from fpkit import Validated, NonEmptyChain, Either, par_map_n, show
from fpkit.validated import map_n


@dataclass(frozen=True)
class SignupForm:
    username: str
    email: str
    age: int


def check_username(name: str) -> Validated[NonEmptyChain[str], str]:
    return Validated.cond_nec(re.fullmatch(r"[a-z][a-z0-9_]{2,15}", name) is not None,
                              lambda: name, lambda: f"username {name!r} must be 3-16 lowercase characters")


def check_email(email: str) -> Validated[NonEmptyChain[str], str]:
    return Validated.cond_nec("@" in email and "." in email.split("@")[-1],
                              lambda: email.lower(), lambda: f"email {email!r} is not an address")


def check_age(age: int) -> Validated[NonEmptyChain[str], int]:
    return Validated.cond_nec(13 <= age <= 120, lambda: age, lambda: f"age {age} must be between 13 and 120")


def validate(username: str, email: str, age: int) -> Validated[NonEmptyChain[str], SignupForm]:
    return map_n(check_username(username), check_email(email), check_age(age), SignupForm)


def check_password(pw: str) -> Either[list, str]:
    rules = [(len(pw) >= 10, "at least 10 characters"),
             (any(c.isdigit() for c in pw), "a digit"),
             (pw.lower() != pw, "an upper-case letter")]
    missing = [f"password needs {msg}" for ok, msg in rules if not ok]
    return Either.cond(not missing, lambda: pw, lambda: missing)


def main():
    ok = validate("river_otter", "Otter@Example.org", 31)
    print(show(ok.map(lambda f: f.email)))

    bad = validate("X", "nowhere", 7)
    for problem in bad.fold(list, lambda _: []):
        print(" -", problem)

    # Dependent checks chain with and_then and stop at the first failure
    adult = ok.and_then(lambda f: Validated.cond_nec(f.age >= 18, lambda: f, lambda: "must be an adult"))
    print(adult.is_valid())

    # Either checks combined in parallel accumulate their Lefts
    print(par_map_n(check_password("short"), check_password("alsoshort"), lambda a, b: (a, b)))


if __name__ == "__main__":
    main()
