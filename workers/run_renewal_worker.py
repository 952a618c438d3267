from common.workers.launcher import WorkerLauncher
from packages.billing.workers.renewal_worker import RenewalWorker

if __name__ == "__main__":
    WorkerLauncher().run(worker_factory=RenewalWorker, worker_name="Renewal Worker")
