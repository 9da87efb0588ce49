# awesomelint

Checks a curated "awesome" list kept in a Markdown file (by default `README.md`).

`awesomelint` walks the document and stops at the first broken rule:

- no raw HTML appears, except table-of-contents markers (`<!-- toc`);
- every list item that carries a link has text of the form `name - description`
  (optionally `name [crate] - description`); a warning points out items that use a
  long dash (`—`) instead of `-`;
- the items of each list are sorted case-insensitively; when they are not, a unified diff
  that would sort them is printed (the top-level list holding both `License` and
  `Resources` is exempt);
- every linked project is popular enough: at least 50 GitHub stars, or at least 2000
  crates.io downloads. Under a level-3 heading mentioning *Games* or *Emulators* 40 stars
  suffice; under a level-2 heading mentioning *Resources* no stars are required. Archived
  repositories count as 0 stars. A fixed set of well-known URLs passes without counting.

It then checks that every remaining link still answers, up to 20 requests at a time and with
up to five attempts per link. A few cases are handled specially: GitHub Actions pages that
answer 404 are checked as their repository, YouTube videos that redirect are checked through
their thumbnail, YouTube playlists that redirect to the consent page are taken as working,
Azure build pages follow their redirect, Travis badge images must name a branch and not show
an unknown build, and `429 Too Many Requests` is recorded without retrying. Temporary
redirects (302, 307) count as working; other redirects are recorded as failures.

## Stored results

Results live in a results directory (default `results/`, created if missing):

- `results.yaml` – the last state of every checked link. Links found working are not
  checked again for three days; links no longer in the README are dropped.
- `popularity.yaml` – star and download counts, so they are fetched only once.

At the end, a failure is reported (and makes the command fail) when the link answered
301 or 404, has never worked, or has not worked for more than seven days. A 429 on a link
that worked before is ignored; more recent failures are listed as not worrying yet.

## Installation

```
pip install .
```

## Usage

```
awesomelint [--readme README.md] [--results-dir results]
```

The command prints a mark per checked link and exits with status 1 when the list breaks a
rule or when any link fails, and 0 with `No errors!` otherwise.

To avoid GitHub rate limits, set `USERNAME_FOR_GITHUB` and `TOKEN_FOR_GITHUB` (a token with
`public_repo` scope); GitHub links are then checked through the GitHub API with those
credentials.

To replace long dashes (` — `) with plain ones (` - `) on every line after the
`## Applications` heading, rewriting the file in place:

```
awesomelint-cleanup [README.md]
```

To list all linked GitHub repositories (links of the form `https://github.com/org/repo`)
tagged with the `hacktoberfest` topic, as Markdown list lines:

```
awesomelint-hacktoberfest [--readme README.md] [--results-dir results]
```

Repository data is cached in `hacktoberfest.yaml` in the results directory; repositories
already cached are not fetched again. If any lookup fails, the failing URLs are printed, no
listing is shown and the command exits with status 1.

## Library use

The pieces are importable on their own:

```python
from awesomelint.cleanup import fix_dashes
from awesomelint.readme import matches_item_template, override_stars, sorting_patch

fix_dashes(["## Applications", "* [a](https://example.com) — thing"])
# ['## Applications', '* [a](https://example.com) - thing']

override_stars(3, "Games")          # 40
sorting_patch(["b", "a"])           # a unified diff; "" when already sorted
```

`awesomelint.readme.ReadmeScanner` runs the README rules with your own count-fetching
coroutines, `awesomelint.checker.UrlChecker` checks single URLs with an `httpx.AsyncClient`,
`awesomelint.results` reads and writes the stored YAML files, and `awesomelint.cli.run` and
`awesomelint.hacktoberfest.run` run the whole commands.