# ethanalysis

A library for following the Ethereum beacon chain and keeping a record of it
in a SQL database: which state roots and blocks belong to which slot, how
much was deposited, what the validator balances add up to, how much ETH has
been issued and what a validator can expect to earn from issuance.

## Configuration

Settings come from the environment:

| Variable       | Meaning                                                      |
|----------------|--------------------------------------------------------------|
| `BEACON_URL`   | Base URL of a beacon node's HTTP API                         |
| `DATABASE_URL` | Database connection URL                                      |
| `ENV`          | `dev`/`development`, `stag`/`staging` or `prod`/`production` |

In `ethanalysis.env`:

- `get_env_var(key)` returns the value, or `None` when the variable is unset.
- `get_env_var_unsafe(key)` raises `MissingEnvVarError` (a `KeyError`) when
  it is unset.
- `get_env_bool(key)` is true only for `true` in any casing; anything else,
  including absence, is false.
- `get_env()` returns an `Env` member (`DEV`, `STAG`, `PROD`). When `ENV` is
  unset it assumes `Env.DEV`; an unknown value raises `ValueError`.

`ethanalysis.db.get_db_url()` reads `DATABASE_URL`, and
`get_db_url_with_name(name)` appends `?application_name=<name>` to it.

## Slots

A `Slot` is a 12 second period counted from beacon chain genesis
(2020-12-01T12:00:23Z). Slot numbers must fit in a signed 32-bit integer.

```python
from ethanalysis.slot import Slot

Slot(0).date_time()            # datetime(2020, 12, 1, 12, 0, 23, tzinfo=timezone.utc)
Slot(3599).is_first_of_day()   # True
Slot(4).is_first_of_minute()   # True
Slot.parse("1229")             # Slot(number=1229)
Slot(10) + 1                   # Slot(number=11)
```

`Slot.from_date_time` returns `None` for a moment that is not exactly the
start of a slot; `Slot.from_date_time_rounded_down` always returns a slot.
`slot_from_string` decodes a slot sent as a JSON string. The module also
defines `FIRST_POST_MERGE_SLOT` and `FIRST_POST_LONDON_SLOT`.

## Talking to a beacon node

```python
from ethanalysis.node import BeaconNode

with BeaconNode() as node:          # reads BEACON_URL; or BeaconNode("http://localhost:5052")
    header = node.get_last_header()
    state_root = node.get_state_root_by_slot(header.slot)
    balances = node.get_validator_balances(state_root)
```

Block, header, state root and validator balance lookups return `None` when
the node answers 404, and raise `BeaconNodeError` on any other status other
than 200. `get_header_by_slot` raises `BeaconNodeError` for a slot that lies
in the future. `get_last_header`, `get_last_block` and
`get_last_finalized_block` raise `BeaconNodeError` if the node has nothing.
`get_validators_by_state` and `get_last_finality_checkpoint` raise
`httpx.HTTPStatusError` on an error status.

## Storage

`ethanalysis.schema.create_tables(connection)` creates the tables
(`beacon_states`, `beacon_blocks`, `beacon_validators_balance`,
`beacon_issuance`) on a SQLAlchemy connection.

```python
import sqlalchemy

from ethanalysis import schema, states
from ethanalysis.slot import Slot

engine = sqlalchemy.create_engine("sqlite://")
with engine.begin() as connection:
    schema.create_tables(connection)
    states.store_state(connection, "0xstate_root", Slot(0))
    states.get_last_state(connection)   # BeaconState(slot=Slot(number=0), state_root='0xstate_root')
```

- `states`: store, look up and delete state roots by slot.
- `blocks`: store blocks, check whether a block root is known (the
  `GENESIS_PARENT_ROOT` always is), look blocks up by slot, set block hashes
  and delete blocks by slot.
- `deposits`: sum a block's deposits, aggregate them onto the parent's total
  and read the aggregated total by state root.
- `balances`: sum validator balances, store and read them per state, list
  the first sum of each UTC day as `GweiInTime` values, and
  `backfill_balances(connection, beacon_node, daily_only)`, which fills in
  missing sums for post-London states from the node and returns how many it
  filled.
- `effective_balance_sum`: sum validators' effective balances from the node
  and store or read the sum on a state.

Lookups that must find a row raise SQLAlchemy's `NoResultFound` when it is
missing.

## Issuance and rewards

- `issuance.calc_issuance` subtracts the aggregated deposits from the sum of
  validator balances; `store_issuance`, `get_current_issuance` and
  `get_issuance_by_start_of_day` keep the record.
- `issuance.get_day7_ago_issuance` returns the issuance stored closest to
  seven days ago, within one day of it.
- `issuance.get_last_week_issuance` and `get_issuance_per_slot_estimate`
  work on any `IssuanceStore`; `IssuanceStoreDb` is the one backed by the
  database. `IssuanceEstimate.to_json()` renders an estimate.
- `rewards.get_issuance_reward` gives the annual issuance reward and APR of a
  single validator for a given effective balance sum, as a
  `ValidatorReward`.

## Keeping in sync

`ethanalysis.sync` holds the pieces used to follow the chain:

- `SlotRange` is an inclusive, iterable range of slots.
- `HeadEvent` decodes a head event from the node's event stream.
- `slots_to_emit` fills the gaps between head events.
- `gather_sync_data` fetches a slot's header, block and balances (skipping
  balances when the lag exceeds five minutes) and raises `SlotReorgedError`
  when the state root changed underneath it.
- `get_sync_lag` measures how far a slot is behind the head.
- `find_last_matching_slot` walks back to the last slot where the stored and
  on-chain state roots agree.

`ethanalysis.integrity.check_beacon_state_gaps` verifies that stored slots
are contiguous and that every block's parent is known, returning the number
of states and blocks checked. It raises `BeaconStateGapError` otherwise.

## What this package does not do

It is a library only: it installs no commands. It does not run a
long-lived sync loop that subscribes to the node's event stream and stores
slots as they arrive, nor roll back and re-sync diverged slots on its own;
the pieces above are what such a loop would be built from. It does not
publish computed values to a cache or notification channel, serve anything
over HTTP, estimate rewards from tips or MEV, or manage database migrations
beyond `create_tables`.