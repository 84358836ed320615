"""Run the VLAN path verifier across several hosts in parallel."""

from __future__ import annotations

import concurrent.futures
import itertools
from typing import Iterable

from loguru import logger

from vsphereops.vlantest.base.client import BaseInfrastructureClient
from vsphereops.vlantest.config import VerifierConfig
from vsphereops.vlantest.exceptions import RunInterrupted, VlanTestError
from vsphereops.vlantest.models import ResultStatus, UplinkTestResult, VlanTestSpec
from vsphereops.vlantest.verifier import VlanPathVerifier


def verify_hosts(
    client: BaseInfrastructureClient,
    hosts: Iterable[str],
    specs: Iterable[VlanTestSpec],
    config: VerifierConfig | None = None,
    vlan_filter: int | None = None,
) -> list[UplinkTestResult]:
    """Verify every host, at most ``config.max_concurrency`` at a time.

    Each host is a strictly sequential pass with its own test adapter. Hosts
    sharing a distributed switch take turns on its test port group.
    Results are returned grouped by host in the order the hosts were given.

    Raises:
        RunInterrupted: On ``KeyboardInterrupt``. Hosts not yet started are
            never started; running passes stop after their current VLAN and
            tear down. The exception carries the rows collected up to then.
    """
    config = config or VerifierConfig()
    host_list = list(dict.fromkeys(h.strip() for h in hosts if h.strip()))
    if not host_list:
        return []

    verifier = VlanPathVerifier(client, specs, config, vlan_filter=vlan_filter)
    by_host: dict[str, list[UplinkTestResult]] = {}
    total = len(host_list)
    done = 0

    logger.info(f"Verifying {total} host(s), max {config.max_concurrency} in parallel")
    queued = iter(host_list)
    running: dict[concurrent.futures.Future, str] = {}
    with concurrent.futures.ThreadPoolExecutor(max_workers=config.max_concurrency) as pool:
        try:
            # hosts are handed to the pool only as slots free up, so an interrupt leaves nothing queued
            for host in itertools.islice(queued, config.max_concurrency):
                running[pool.submit(verifier.verify_host, host)] = host

            while running:
                finished, _ = concurrent.futures.wait(running, return_when=concurrent.futures.FIRST_COMPLETED)
                for future in finished:
                    host = running.pop(future)
                    done += 1
                    try:
                        by_host[host] = future.result()
                        logger.info(f"  [{done}/{total}] {host}: {len(by_host[host])} result(s)")
                    except VlanTestError as e:
                        logger.error(f"  [{done}/{total}] {host}: failed: {e}")
                        by_host[host] = [UplinkTestResult(host=host, status=ResultStatus.FAILED, message=str(e))]

                    next_host = next(queued, None)
                    if next_host is not None:
                        running[pool.submit(verifier.verify_host, next_host)] = next_host
        except KeyboardInterrupt as e:
            logger.warning(f"Interrupted, waiting for {len(running)} running host pass(es) to tear down")
            verifier.stop()
            pool.shutdown(wait=True, cancel_futures=True)
            for future, host in running.items():
                if not future.cancelled() and future.exception() is None:
                    by_host[host] = future.result()
            raise RunInterrupted(_in_host_order(host_list, by_host)) from e

    return _in_host_order(host_list, by_host)


def _in_host_order(host_list: list[str], by_host: dict[str, list[UplinkTestResult]]) -> list[UplinkTestResult]:
    results: list[UplinkTestResult] = []
    for host in host_list:
        results.extend(by_host.get(host, []))
    return results
